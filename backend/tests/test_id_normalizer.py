"""Tests for MaterialIndex id resolution."""

from stockops.models.material import Material, MaterialVariation
from stockops.services.id_normalizer import MaterialIndex, MaterialSnapshot, VariationSnapshot


def _index():
    thread = MaterialSnapshot(
        id=1, external_id=501, name="Thread", type="variable", stock_quantity=0, manage_stock=True,
        variations=[
            VariationSnapshot(id=11, material_id=1, external_id=601, name="Black", stock_quantity=4, manage_stock=True),
            VariationSnapshot(id=12, material_id=1, external_id=602, name="White", stock_quantity=7, manage_stock=True),
        ],
    )
    fabric = MaterialSnapshot(
        id=2, external_id=None, name="Fabric", type="simple", stock_quantity=30, manage_stock=True,
    )
    return MaterialIndex([thread, fabric])


class TestMaterialIndex:
    def test_find_by_local_id(self):
        index = _index()
        assert index.find_material(1).name == "Thread"
        assert index.find_material(2).name == "Fabric"

    def test_find_by_external_id(self):
        index = _index()
        assert index.find_material(501).id == 1

    def test_normalize_id_maps_external_onto_local(self):
        index = _index()
        assert index.normalize_id(501) == 1
        assert index.normalize_id(1) == 1

    def test_normalize_unknown_id_passes_through(self):
        index = _index()
        assert index.normalize_id(999) == 999
        assert index.find_material(999) is None
        assert index.find_material(None) is None

    def test_local_id_wins_over_external_collision(self):
        collision = MaterialSnapshot(
            id=501, external_id=None, name="Local 501", type="simple", stock_quantity=0, manage_stock=True,
        )
        index = MaterialIndex([*_index(), collision])
        assert index.find_material(501).name == "Local 501"

    def test_variation_lookup_in_both_id_spaces(self):
        index = _index()
        thread = index.find_material(1)
        assert index.find_variation(thread, 11).name == "Black"
        assert index.find_variation(thread, 602).name == "White"
        assert index.normalize_variation_id(thread, 601) == 11

    def test_variation_none_and_unknown(self):
        index = _index()
        thread = index.find_material(1)
        assert index.find_variation(thread, None) is None
        assert index.normalize_variation_id(thread, None) is None
        assert index.normalize_variation_id(thread, 777) == 777

    def test_display_name(self):
        index = _index()
        thread = index.find_material(1)
        assert MaterialIndex.display_name(thread) == "Thread"
        assert MaterialIndex.display_name(thread, thread.variations[0]) == "Thread - Black"


class TestFromMaterials:
    def test_skips_inactive_materials_and_variations(self):
        active = Material(id=1, name="Thread", type="variable", stock_quantity=0)
        active.variations = [
            MaterialVariation(id=11, material_id=1, name="Black", stock_quantity=3),
            MaterialVariation(id=12, material_id=1, name="Old", stock_quantity=9, is_active=False),
        ]
        retired = Material(id=2, name="Retired", stock_quantity=5, is_active=False)

        index = MaterialIndex.from_materials([active, retired])

        assert len(index) == 1
        thread = index.find_material(1)
        assert [v.id for v in thread.variations] == [11]
        assert index.find_material(2) is None

from pydantic import BaseModel, Field


class CredentialsRequest(BaseModel):
    store_url: str = Field(min_length=1)
    consumer_key: str = Field(min_length=1)
    consumer_secret: str = Field(min_length=1)


class CredentialsStatusResponse(BaseModel):
    # never returns the keys themselves
    has_credentials: bool
    store_url: str | None = None


class CacheStatsResponse(BaseModel):
    size: int
    keys: list[str]
    hits: int
    misses: int


class MessageResponse(BaseModel):
    message: str

"""Generation status schemas."""

from pydantic import BaseModel


class KeyStatusResponse(BaseModel):
    id: int
    label: str
    requests: int
    available: bool
    errors: int
    suspended: bool

    class Config:
        from_attributes = True


class KeyPoolStatusResponse(BaseModel):
    can_make_request: bool
    wait_time: float  # seconds
    requests_remaining: int
    active_keys: int
    key_statuses: list[KeyStatusResponse]

    class Config:
        from_attributes = True

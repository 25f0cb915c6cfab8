from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from .user import SUserResponse


class SRefreshTokenRequest(BaseModel):
    refresh_token: Optional[str] = None


class SLogoutRequest(BaseModel):
    refresh_token: Optional[str] = None


class STokenResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    token: str
    refresh_token: Optional[str] = None
    expires_at: datetime
    user: Optional[SUserResponse] = None


class SRefreshTokenStatistics(BaseModel):
    success: bool = True
    total: int
    active: int
    expired: int
    revoked: int
    usage_rate: float


class SRefreshTokenResponse(BaseModel):
    id: int
    user_id: int
    created_at: datetime
    expires_at: datetime
    last_used_at: datetime
    ip_address: Optional[str]
    user_agent: Optional[str]
    is_revoked: bool

    model_config = ConfigDict(
        from_attributes=True
    )


class SUserRefreshTokens(BaseModel):
    success: bool = True
    active_count: int
    data: List[SRefreshTokenResponse]

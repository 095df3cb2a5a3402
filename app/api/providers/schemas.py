from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.core import Provider


class ProviderAccountInfo(BaseModel):
    id: str
    provider: Provider
    provider_user_id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    profile_url: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None


class ProviderStatus(BaseModel):
    id: Provider
    name: str
    connected: bool
    account: Optional[ProviderAccountInfo] = None


class ProviderStatusList(BaseModel):
    providers: List[ProviderStatus]


class ConnectUrlResponse(BaseModel):
    auth_url: str


def account_info(account) -> ProviderAccountInfo:
    return ProviderAccountInfo(
        id=account.id,
        provider=account.provider,
        provider_user_id=account.provider_user_id,
        display_name=account.display_name,
        email=account.email,
        profile_url=account.profile_url,
        image_url=account.image_url,
        created_at=account.created_at,
    )

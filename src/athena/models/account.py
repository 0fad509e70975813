"""Account resource payloads."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ExternalAuth(BaseModel):
    """A linked platform account (psn, xbl, nintendo, ...)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    account_id: Optional[str] = Field(default=None, alias="accountId")
    type: str
    external_auth_id: Optional[str] = Field(default=None, alias="externalAuthId")
    external_display_name: Optional[str] = Field(default=None, alias="externalDisplayName")
    auth_ids: List[dict] = Field(default_factory=list, alias="authIds")


class Account(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    account_id: str = Field(alias="id")
    display_name: Optional[str] = Field(default=None, alias="displayName")
    external_auths: Dict[str, ExternalAuth] = Field(default_factory=dict, alias="externalAuths")

    @model_validator(mode="after")
    def _fill_display_name(self) -> "Account":
        # Console-only accounts have no Epic display name
        if not self.display_name:
            for external in self.external_auths.values():
                if external.external_display_name:
                    self.display_name = external.external_display_name
                    break
        return self

    def external_auth(self, platform: str) -> Optional[ExternalAuth]:
        return self.external_auths.get(platform)

# models/domain/profile_domain.py
"""
Helpdesk profile domain model.
Field aliases match the camelCase keys the dashboard stores in profiles.json.
"""

from pydantic import BaseModel, ConfigDict, Field


class Profile(BaseModel):
    """Named credential bundle for one Zoho Desk organization/department."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    profile_name: str = Field(..., alias="profileName")
    org_id: str = Field(default="", alias="orgId")
    default_department_id: str = Field(default="", alias="defaultDepartmentId")
    client_id: str = Field(default="", alias="clientId")
    client_secret: str = Field(default="", alias="clientSecret")
    refresh_token: str = Field(default="", alias="refreshToken")
    from_email_address: str | None = Field(default=None, alias="fromEmailAddress")
    mail_reply_address_id: str | None = Field(default=None, alias="mailReplyAddressId")

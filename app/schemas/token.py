from pydantic import BaseModel, Field


class Token(BaseModel):
    access_token: str = Field(..., min_length=32, description="Access token string.")
    token_type: str = Field("bearer", description="Type of the token, always 'bearer'.")
    expires_in: int | None = Field(None, description="Time in seconds before token expires.")
    tenant_slug: str | None = Field(None, description="Studio the token is bound to.")

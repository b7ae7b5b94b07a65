"""Firebase Cloud Messaging settings."""

from pydantic import Field, field_validator

from infrastructure.configuration.base import IntegrationSettings


class FirebaseSettings(IntegrationSettings):
    """Firebase service account used for push delivery.

    Environment Variables:
        FIREBASE_PROJECT_ID: Firebase project id
        FIREBASE_CLIENT_EMAIL: Service account client email
        FIREBASE_PRIVATE_KEY: Service account private key; escaped newlines
            ("\\n") are restored so the key can live on one env line
    """

    project_id: str | None = Field(default=None, alias="FIREBASE_PROJECT_ID")
    client_email: str | None = Field(default=None, alias="FIREBASE_CLIENT_EMAIL")
    private_key: str | None = Field(default=None, alias="FIREBASE_PRIVATE_KEY")

    @field_validator("private_key")
    @classmethod
    def restore_newlines(cls, v: str | None) -> str | None:
        if not v:
            return None
        return v.replace("\\n", "\n")

    @property
    def is_configured(self) -> bool:
        return bool(self.project_id and self.client_email and self.private_key)

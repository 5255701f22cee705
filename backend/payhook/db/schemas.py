from datetime import datetime

from pydantic import BaseModel, ConfigDict

from payhook.db.models import Provider


class EntitlementRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    user_id: str
    is_active: bool
    provider: Provider
    updated_at: datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

class Record(CamelModel):
    id: str
    name: str
    dob: str
    mobile: str
    father: str
    # records written before the rename carry "aadhar"
    national_id: str = Field(
        validation_alias=AliasChoices("nationalId", "national_id", "aadhar"),
        serialization_alias="nationalId",
    )
    timestamp: str
    ip: str = "unknown"
    user_agent: str = "unknown"

class RecentEntry(CamelModel):
    id: str
    name: str
    timestamp: str
    mobile: str

class Stats(CamelModel):
    total: int = 0
    today: int = 0
    last_updated: Optional[str] = None

class SecurityStats(CamelModel):
    failed_attempts: int = 0
    last_failed: Optional[str] = None
    successful_logins: int = 0
    last_successful: Optional[str] = None

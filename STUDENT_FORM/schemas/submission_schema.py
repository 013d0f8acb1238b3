from pydantic import BaseModel
from schemas.record_schema import CamelModel

REQUIRED_FIELDS = ["name", "dob", "mobile", "father", "nationalId"]

class SanitizedSubmission(CamelModel):
    name: str
    dob: str
    mobile: str
    father: str
    national_id: str

class SubmitResponseData(BaseModel):
    id: str
    timestamp: str
    name: str

class SubmitResponse(BaseModel):
    success: bool = True
    message: str = "Form submitted successfully"
    data: SubmitResponseData

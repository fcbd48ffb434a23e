from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone
from typing import List, Optional
import os


def utcnow() -> datetime:
    """Naive UTC timestamp at millisecond precision, the resolution BSON keeps."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Keywords(CamelModel):
    found: List[str]
    missing: List[str]


class AnalysisResult(CamelModel):
    score: int = Field(ge=0, le=100)
    ats_friendly: bool = Field(alias="atsFriendly")
    strengths: List[str]
    improvements: List[str]
    keywords: Keywords
    summary: str


FALLBACK_RESULT = AnalysisResult(
    score=75,
    ats_friendly=True,
    strengths=["Well-structured resume", "Good experience section"],
    improvements=["Add more quantifiable achievements", "Include more keywords"],
    keywords=Keywords(
        found=["JavaScript", "React", "Node.js"],
        missing=["Python", "AWS", "Docker"],
    ),
    summary="This is a good resume but could be improved with more specific achievements and keywords.",
)


class UploadedDocument(BaseModel):
    storage_ref: str
    original_name: str
    mime_type: str
    size_bytes: int

    @property
    def extension(self) -> str:
        return os.path.splitext(self.original_name)[1].lower().lstrip(".")

    @property
    def document_type(self) -> str:
        """Extractor key: "text" for any text/* upload, otherwise the extension."""
        if self.mime_type.lower().startswith("text/"):
            return "text"
        return self.extension


class AnalysisRecord(BaseModel):
    id: Optional[int] = None
    user_id: int
    storage_ref: str
    original_name: str
    result: AnalysisResult
    score: int
    # fenced | braces | whole | fallback; internal only
    result_source: str = Field(exclude=True)
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def is_fallback(self) -> bool:
        return self.result_source == "fallback"


class AnalysisSummary(CamelModel):
    id: int
    original_name: str = Field(alias="originalName")
    score: Optional[int] = None
    created_at: datetime = Field(alias="createdAt")


class User(BaseModel):
    id: int
    email: str
    created_at: datetime


class RegisterRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = Field(default=None, alias="confirmPassword")


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    remember_me: bool = Field(default=False, alias="rememberMe")


class ApiKeyRequest(CamelModel):
    service_name: Optional[str] = Field(default=None, alias="serviceName")
    api_key: Optional[str] = Field(default=None, alias="apiKey")

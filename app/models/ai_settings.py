"""
AI Settings Models for Configuration Management
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, validator

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-3-flash-preview"


class GatewaySettings(BaseModel):
    """LLM gateway configuration"""
    api_key: Optional[str] = Field(default=None, description="Bearer token for the gateway")
    url: str = Field(default=DEFAULT_GATEWAY_URL, description="Chat-completions endpoint")
    model: str = Field(default=DEFAULT_MODEL, description="Model requested from the gateway")
    timeout: float = Field(default=30, ge=1, le=300, description="Request timeout in seconds")

    @validator('api_key')
    def strip_api_key(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None


class MatchingSettings(BaseModel):
    """Pool and prompt bounds for matching"""
    pool_cap: int = Field(default=50, ge=1, le=200, description="Maximum rows fetched for a batch operation")
    top_n: int = Field(default=10, ge=1, le=50, description="Maximum ranked entries returned by a batch operation")
    description_chars: int = Field(default=500, ge=0, description="Job description characters embedded in the pair prompt")


class StorageSettings(BaseModel):
    """MongoDB connection configuration"""
    mongo_details: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    db_name: str = Field(default="ats_db", description="Database name")


class AppSettings(BaseModel):
    """Complete service configuration"""
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


def load_settings() -> AppSettings:
    """Build settings from the process environment (and .env, when present)"""
    load_dotenv(override=False)

    return AppSettings(
        gateway=GatewaySettings(
            api_key=os.getenv("LLM_API_KEY") or os.getenv("LOVABLE_API_KEY"),
            url=os.getenv("LLM_GATEWAY_URL", DEFAULT_GATEWAY_URL),
            model=os.getenv("LLM_MODEL", DEFAULT_MODEL),
            timeout=float(os.getenv("LLM_TIMEOUT", "30")),
        ),
        matching=MatchingSettings(
            pool_cap=int(os.getenv("MATCH_POOL_CAP", "50")),
            top_n=int(os.getenv("MATCH_TOP_N", "10")),
            description_chars=int(os.getenv("DESCRIPTION_PROMPT_CHARS", "500")),
        ),
        storage=StorageSettings(
            mongo_details=os.getenv("MONGO_DETAILS", "mongodb://localhost:27017"),
            db_name=os.getenv("DB_NAME", "ats_db"),
        ),
    )

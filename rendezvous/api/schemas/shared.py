from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ImportColumnInfo(BaseModel):
    """Public description of one target column of an import schema."""
    key: str
    label: str
    required: bool = False
    type: str = "text"
    example: str = ""
    description: str = ""


class ColumnsResponse(BaseModel):
    entity_type: str
    columns: List[ImportColumnInfo]


class ColumnScore(BaseModel):
    header: Optional[str] = None
    score: float = 0.0
    accepted: bool = False


class DetectMappingResponse(BaseModel):
    success: bool
    entity_type: str
    file_hash: str
    headers: List[str]
    detected_mapping: Dict[str, str]
    scores: Dict[str, ColumnScore] = Field(default_factory=dict)
    missing_required: List[str] = Field(default_factory=list)
    row_count: int = 0


class ValidateResponse(BaseModel):
    success: bool
    entity_type: str
    total_rows: int = 0
    valid_count: int = 0
    invalid_count: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ImportResultResponse(BaseModel):
    success: bool
    entity_type: str
    imported: int = 0
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    skipped: int = 0
    duplicates: int = 0


class CacheStatsResponse(BaseModel):
    total_entries: int
    valid_entries: int
    expired_entries: int
    hit_rate: float


class ClearCacheResponse(BaseModel):
    success: bool
    cleared: int
    pattern: Optional[str] = None


class IntegrationResponse(BaseModel):
    success: bool
    data: Dict[str, Any]

"""
Analytics Models — typed records read from the store and the results the
scorers produce.

Records arrive as loosely-shaped JSON objects with camelCase keys (the
browser-side store format).  Every record is validated into one of the
frozen models below before any scorer sees it; a record that fails
validation never reaches the scoring math.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Enums
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FactorCategory(str, Enum):
    ADHERENCE = "adherence"
    APPOINTMENTS = "appointments"
    VITALS = "vitals"
    LABS = "labs"
    DISCHARGE = "discharge"


class EngagementLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    DECLINING = "declining"
    CRITICAL = "critical"


class AlertSeverity(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Trend(str, Enum):
    STABLE = "stable"
    DECLINING = "declining"
    WORSENING = "worsening"
    UNKNOWN = "unknown"

    @property
    def is_negative(self) -> bool:
        return self in (Trend.DECLINING, Trend.WORSENING)


class DisengagementRisk(str, Enum):
    LOW = "low"
    LIKELY = "likely"
    IMMINENT = "imminent"


class RecommendationPriority(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class RecommendationCategory(str, Enum):
    CLINICAL = "clinical"
    ENGAGEMENT = "engagement"
    INTERVENTION = "intervention"
    ADHERENCE = "adherence"
    APPOINTMENTS = "appointments"
    VITALS = "vitals"
    COMMUNICATION = "communication"


class AnalyticsStatus(str, Enum):
    OK = "ok"
    UNAVAILABLE = "unavailable"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Timestamp handling
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def parse_timestamp(value: Any) -> datetime:
    """Parse a stored timestamp into an aware UTC datetime.

    Accepts:
      - datetime objects (naive values are taken as UTC)
      - date objects → midnight UTC
      - ISO-8601 strings, with or without a trailing "Z"
      - date-only strings ("2026-03-01")
      - numbers → epoch milliseconds (what Date.now() writes)

    Anything else raises ValueError; callers must not substitute "now".
    """
    if isinstance(value, bool):
        raise ValueError(f"Boolean is not a timestamp: {value!r}")

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"Epoch value out of range: {value!r}") from exc
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty timestamp")
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"Unparseable timestamp: {value!r}") from exc
    else:
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# Owner ids are written as numbers by some clients and as strings by others
_RECORD_CONFIG = {"populate_by_name": True, "frozen": True, "coerce_numbers_to_str": True}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Store records
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class PatientRecord(BaseModel):
    model_config = _RECORD_CONFIG

    id: str
    name: Optional[str] = None
    discharge_date: Optional[datetime] = Field(default=None, alias="dischargeDate")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("discharge_date", mode="before")
    @classmethod
    def _parse_discharge(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return parse_timestamp(value)


class AdherenceEvent(BaseModel):
    model_config = _RECORD_CONFIG

    patient_id: str = Field(alias="patientId")
    timestamp: datetime
    medication_taken: bool = Field(default=False, alias="medicationTaken")

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> datetime:
        return parse_timestamp(value)


class AppointmentRecord(BaseModel):
    model_config = _RECORD_CONFIG

    patient_id: str = Field(alias="patientId")
    date: datetime
    status: str = "scheduled"

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> datetime:
        return parse_timestamp(value)


class VitalsReading(BaseModel):
    """Vital-sign values carried by one sync.  Unknown vitals are kept."""

    model_config = {"populate_by_name": True, "frozen": True, "extra": "allow"}

    heart_rate: Optional[float] = Field(default=None, ge=0, le=300, alias="heartRate")
    oxygen_saturation: Optional[float] = Field(
        default=None, ge=0, le=100, alias="oxygenSaturation",
    )


class VitalsSample(BaseModel):
    model_config = _RECORD_CONFIG

    patient_id: str = Field(alias="patientId")
    timestamp: datetime
    data: VitalsReading = Field(default_factory=VitalsReading)

    @model_validator(mode="before")
    @classmethod
    def _lift_flat_vitals(cls, values: Any) -> Any:
        # Older syncs store the vitals beside the metadata instead of under "data"
        if isinstance(values, dict) and values.get("data") is None:
            flat = {
                k: v for k, v in values.items()
                if k not in ("patientId", "patient_id", "timestamp", "data", "id")
            }
            values = {**values, "data": flat}
        return values

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> datetime:
        return parse_timestamp(value)


class LabReportRecord(BaseModel):
    model_config = _RECORD_CONFIG

    patient_id: str = Field(alias="patientId")
    timestamp: datetime

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> datetime:
        return parse_timestamp(value)


class DoctorAnalysisRecord(BaseModel):
    model_config = _RECORD_CONFIG

    patient_id: str = Field(alias="patientId")
    analysis_text: str = Field(default="", alias="analysis")

    @field_validator("analysis_text", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class MessageRecord(BaseModel):
    model_config = _RECORD_CONFIG

    patient_id: str = Field(alias="patientId")
    sender_id: Optional[str] = Field(default=None, alias="senderId")
    timestamp: datetime

    @model_validator(mode="before")
    @classmethod
    def _resolve_sender(cls, values: Any) -> Any:
        if isinstance(values, dict) and not values.get("senderId") and not values.get("sender_id"):
            sender = values.get("sender") or values.get("from")
            if sender is not None:
                values = {**values, "senderId": sender}
        return values

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> datetime:
        return parse_timestamp(value)


class SessionRecord(BaseModel):
    model_config = _RECORD_CONFIG

    user_id: str = Field(alias="userId")
    timestamp: datetime

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> datetime:
        return parse_timestamp(value)


class ReminderRecord(BaseModel):
    model_config = _RECORD_CONFIG

    patient_id: str = Field(alias="patientId")
    active: Optional[bool] = True

    @property
    def is_active(self) -> bool:
        # Only an explicit False switches a reminder off
        return self.active is not False


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Results
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class DataQualityIssue(BaseModel):
    collection: str
    patient_id: str
    reason: str


class Factor(BaseModel):
    type: RiskLevel
    message: str
    weight: int
    category: FactorCategory


class DeteriorationResult(BaseModel):
    score: int = Field(ge=0, le=100)
    level: RiskLevel
    factors: list[Factor] = Field(default_factory=list)
    adherence_rate: int = 100
    computed_at: datetime
    data_quality_issues: list[DataQualityIssue] = Field(default_factory=list)

    def factors_in(self, category: FactorCategory) -> list[Factor]:
        return [f for f in self.factors if f.category == category]


class Alert(BaseModel):
    severity: AlertSeverity
    message: str


class TrendMetric(BaseModel):
    metric: str
    score: float
    trend: Trend


class Prediction(BaseModel):
    risk: DisengagementRisk
    timeframe: str
    confidence: int = Field(ge=0, le=100)


class EngagementResult(BaseModel):
    score: int = Field(ge=0, le=100)
    level: EngagementLevel
    alerts: list[Alert] = Field(default_factory=list)
    trend_data: list[TrendMetric] = Field(default_factory=list)
    prediction: Prediction
    computed_at: datetime
    data_quality_issues: list[DataQualityIssue] = Field(default_factory=list)


class Recommendation(BaseModel):
    priority: RecommendationPriority
    action: str
    reason: str
    category: RecommendationCategory


class CombinedRiskResult(BaseModel):
    patient_id: str
    patient: Optional[PatientRecord] = None
    status: AnalyticsStatus = AnalyticsStatus.OK
    error: Optional[str] = None
    deterioration: Optional[DeteriorationResult] = None
    engagement: Optional[EngagementResult] = None
    combined_score: int = Field(default=0, ge=0, le=100)
    combined_level: RiskLevel = RiskLevel.LOW
    recommended_actions: list[Recommendation] = Field(default_factory=list)
    computed_at: datetime

    @property
    def is_available(self) -> bool:
        return self.status == AnalyticsStatus.OK

    @classmethod
    def unavailable(
        cls,
        patient_id: str,
        error: str,
        computed_at: datetime,
        patient: PatientRecord | None = None,
    ) -> "CombinedRiskResult":
        """Placeholder entry for a patient whose analytics could not be computed."""
        return cls(
            patient_id=patient_id,
            patient=patient,
            status=AnalyticsStatus.UNAVAILABLE,
            error=error,
            computed_at=computed_at,
        )


class RosterSummary(BaseModel):
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    unavailable: int = 0
    predicted_disengagement: int = 0
    computed_at: Optional[datetime] = None

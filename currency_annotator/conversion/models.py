"""
Conversion configuration model
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import settings

AUTO_DETECT = "auto"
CUSTOM_FEE = "custom"


class ConversionConfig(BaseModel):
    """User conversion settings; replaced as a whole, never mutated"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    active: bool = Field(default=False, alias="isActive")
    source_mode: str = Field(default=AUTO_DETECT, alias="fromCurrency")
    target_code: str = Field(default="JPY", alias="toCurrency")
    fee_selector: str = Field(default="none", alias="cardIssuer")
    custom_fee_percent: float = Field(default=0.0, ge=0, alias="customFee")

    @field_validator("source_mode")
    @classmethod
    def _normalize_source(cls, value: str) -> str:
        value = value.strip()
        if not value or value.lower() == AUTO_DETECT:
            return AUTO_DETECT
        return value.upper()

    @field_validator("target_code")
    @classmethod
    def _normalize_target(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("target currency must not be empty")
        return value

    @field_validator("fee_selector")
    @classmethod
    def _normalize_selector(cls, value: str) -> str:
        return value.strip() or "none"

    @property
    def auto_detect(self) -> bool:
        return self.source_mode == AUTO_DETECT

    def to_settings(self) -> Dict[str, Any]:
        """Serialize with the settings-store field names"""
        return self.model_dump(by_alias=True)


class SettingsUpdate(ConversionConfig):
    """Settings change event: a full config plus the user's fee presets"""

    fee_presets: Optional[Dict[str, float]] = Field(default=None, alias="feePresets")

    def to_config(self) -> ConversionConfig:
        return ConversionConfig.model_validate(self.model_dump(exclude={"fee_presets"}))


def default_config() -> ConversionConfig:
    """Config of a fresh install"""
    return ConversionConfig(
        active=settings.default_active,
        source_mode=settings.default_from_currency,
        target_code=settings.default_to_currency,
        fee_selector=settings.default_card_issuer,
        custom_fee_percent=settings.default_custom_fee
    )

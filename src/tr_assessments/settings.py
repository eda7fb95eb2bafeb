"""Service settings for the assessment results service.

All configuration is read from the environment with the TR_ASSESSMENTS_
prefix (e.g. TR_ASSESSMENTS_DATABASE_URL, TR_ASSESSMENTS_GAP_THRESHOLD).
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tr_assessments.core.domain import ComputationConfig


class Settings(BaseSettings):
    """Settings for tr-assessments.

    Environment variable prefix: TR_ASSESSMENTS_
    """

    service_name: str = "tr-assessments"

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/transformation_os"
    database_pool_size: int = 5
    database_echo: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Gap analysis: |self - others| above this is a blind spot / hidden strength
    gap_threshold: float = Field(default=0.5, ge=0.0)

    # Trend: |change| at or below this is "stable"
    trend_stable_threshold: float = Field(default=0.2, ge=0.0)

    # Ranking and narrative list sizes
    ranked_item_count: int = Field(default=5, ge=1)
    strengths_count: int = Field(default=2, ge=1)
    development_areas_count: int = Field(default=2, ge=1)

    # CCI band lower bounds on the 0-100 scale: Moderate, High, Very High
    cci_band_thresholds: tuple[float, float, float] = (25.0, 50.0, 75.0)

    model_config = SettingsConfigDict(env_prefix="TR_ASSESSMENTS_")

    @field_validator("cci_band_thresholds")
    @classmethod
    def _thresholds_ascending(
        cls, value: tuple[float, float, float]
    ) -> tuple[float, float, float]:
        if not (0.0 <= value[0] < value[1] < value[2] <= 100.0):
            raise ValueError(
                f"cci_band_thresholds must be strictly ascending within 0-100, got {value!r}"
            )
        return value

    def computation_config(self) -> ComputationConfig:
        """Project the pipeline thresholds onto the core ComputationConfig."""
        return ComputationConfig(
            gap_threshold=self.gap_threshold,
            trend_stable_threshold=self.trend_stable_threshold,
            ranked_item_count=self.ranked_item_count,
            strengths_count=self.strengths_count,
            development_areas_count=self.development_areas_count,
            cci_band_thresholds=self.cci_band_thresholds,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings instance."""
    return Settings()

"""Calculator configuration."""

from datetime import date
from fractions import Fraction
from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.errors import MissingConfiguration


class ImportantDates(BaseModel):
    """Commencement dates of the legislation the rules branch on."""

    cja_date: date = date(2005, 4, 4)
    laspo_date: date = date(2012, 12, 3)
    ora_date: date = date(2015, 2, 1)
    pcsc_commencement_date: date = date(2022, 6, 28)


class HdcedConfiguration(BaseModel):
    """HDC rules before and after the 365 day maximum came in.

    Both rule sets are worked for every sentence; the commencement date picks one.
    """

    minimum_days_on_hdc: int = Field(default=14, ge=0)
    minimum_custodial_period_days: int = Field(default=42, ge=0)
    custodial_period_below_midpoint_minimum_deduction_days: int = Field(default=28, ge=0)
    custodial_period_mid_point_days_pre_hdc365: int = Field(default=270, ge=1)
    custodial_period_above_midpoint_deduction_days_pre_hdc365: int = Field(default=134, ge=0)
    custodial_period_mid_point_days_post_hdc365: int = Field(default=730, ge=1)
    custodial_period_above_midpoint_deduction_days_post_hdc365: int = Field(default=364, ge=0)
    hdc365_commencement_date: date = date(2025, 6, 3)


class Hdced4PlusConfiguration(BaseModel):
    envelope_minimum_weeks: int = Field(default=12, ge=0)
    envelope_mid_point_months: int = Field(default=18, ge=1)
    minimum_custodial_period_days: int = Field(default=14, ge=0)
    deduction_days: int = Field(default=134, ge=0)


class ErsedConfiguration(BaseModel):
    release_at_halfway_days: int = 2180
    release_at_two_thirds_days: int = 1635
    max_period_days: int = 544


class AFineConfiguration(BaseModel):
    full_term_fine_amount: int = 10_000_000
    full_term_commencement_date: date = date(2020, 12, 1)


class EarlyReleaseConfiguration(BaseModel):
    """SDS early release at forty percent, brought in over three tranches.

    Sentences imposed before tranche one join tranche one unless the booking
    holds a sentence of ``tranche_two_minimum_years`` or more, in which case
    they join tranche two. Tranche three withdraws early release from
    sentences carrying a ``*_T3`` exclusion.
    """

    release_multipliers: dict[str, float] = Field(default_factory=lambda: {"SDS_AFTER_CJA_LASPO": 0.4})
    tranche_one_commencement_date: date = date(2024, 9, 10)
    tranche_two_commencement_date: date = date(2024, 10, 22)
    tranche_three_commencement_date: date = date(2024, 12, 16)
    tranche_two_minimum_years: int = Field(default=5, ge=1)

    def multiplier_for(self, track: str | None) -> Fraction | None:
        if track is None or track not in self.release_multipliers:
            return None
        return Fraction(self.release_multipliers[track]).limit_denominator(100)


DEFAULT_MULTIPLIERS: dict[str, float] = {
    "SDS_BEFORE_CJA_LASPO": 0.5,
    "SDS_AFTER_CJA_LASPO": 0.5,
    "SDS_TWO_THIRDS_RELEASE": 2.0 / 3.0,
    "EDS_AUTOMATIC_RELEASE": 2.0 / 3.0,
    "EDS_DISCRETIONARY_RELEASE": 1.0,
    "SOPC_PED_AT_HALFWAY": 1.0,
    "SOPC_PED_AT_TWO_THIRDS": 1.0,
    "AFINE_ARD_AT_HALFWAY": 0.5,
    "AFINE_ARD_AT_FULL_TERM": 1.0,
    "DTO_BEFORE_PCSC": 0.5,
    "DTO_AFTER_PCSC": 0.5,
}


class Settings(BaseSettings):
    """Environment-driven settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RELEASE_DATES_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    important_dates: ImportantDates = ImportantDates()
    hdced: HdcedConfiguration = HdcedConfiguration()
    hdced4plus: Hdced4PlusConfiguration = Hdced4PlusConfiguration()
    ersed: ErsedConfiguration = ErsedConfiguration()
    afine: AFineConfiguration = AFineConfiguration()
    early_release: EarlyReleaseConfiguration = EarlyReleaseConfiguration()
    release_point_multipliers: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_MULTIPLIERS))

    def multiplier_for(self, track: str | None) -> Fraction:
        if track is None or track not in self.release_point_multipliers:
            raise MissingConfiguration(f"no release point multiplier configured for track {track!r}")
        return Fraction(self.release_point_multipliers[track]).limit_denominator(100)


@lru_cache
def get_settings() -> Settings:
    return Settings()

import os
from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel, Field, field_validator

from talentscout.core.constants import DEFAULT_HTTP_TIMEOUT, DEFAULT_SOURCES


class CollectionConfig(BaseModel):
    default_time_budget: float = 60.0
    max_time_budget: float = 70.0
    max_sources: int = 4
    max_records_per_source: int = 20
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    polite_delay_s: float = 1.0
    default_sources: List[str] = Field(default_factory=lambda: list(DEFAULT_SOURCES))

    @field_validator("max_sources", "max_records_per_source")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Collection caps must be at least 1")
        return value


class GitHubConfig(BaseModel):
    enabled: bool = True
    token: str = ""
    per_page: int = 10
    max_queries: int = 4
    max_pages: int = 2
    repos_per_user: int = 30


class StackOverflowConfig(BaseModel):
    enabled: bool = True
    key: str = ""
    site: str = "stackoverflow"
    max_tags: int = 3
    page_size: int = 10
    max_pages: int = 2


class GoogleSearchConfig(BaseModel):
    enabled: bool = True
    api_key: str = ""
    cse_id: str = ""
    results_per_query: int = 10
    max_queries: int = 3
    max_pages: int = 2

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.cse_id)


class LinkedInConfig(BaseModel):
    enabled: bool = True
    apify_token: str = ""
    actor: str = "apify~linkedin-people-search"
    max_profiles: int = 15
    poll_interval_s: float = 5.0

    @property
    def configured(self) -> bool:
        return bool(self.apify_token)


class DevToConfig(BaseModel):
    enabled: bool = True
    per_page: int = 30
    top_days: int = 7
    max_tags: int = 3
    max_pages: int = 2


class SourcesConfig(BaseModel):
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    stackoverflow: StackOverflowConfig = Field(default_factory=StackOverflowConfig)
    google: GoogleSearchConfig = Field(default_factory=GoogleSearchConfig)
    linkedin: LinkedInConfig = Field(default_factory=LinkedInConfig)
    devto: DevToConfig = Field(default_factory=DevToConfig)


class ScoreWeights(BaseModel):
    skill_match: float = 40
    experience: float = 20
    reputation: float = 15
    freshness: float = 10
    social_proof: float = 5

    def normalized(self) -> "ScoreWeights":
        """Scale weights so they sum to 100."""
        total = sum(self.model_dump().values())
        if not total:
            raise ValueError("Score weights sum to zero; at least one positive weight is required.")
        normalized = {k: v * 100 / total for k, v in self.model_dump().items()}
        return ScoreWeights(**normalized)


class RiskPenalties(BaseModel):
    inactive: float = 15
    few_skills: float = 10
    short_summary: float = 8
    low_experience: float = 12
    no_location: float = 5
    low_score: float = 20


class ScoringConfig(BaseModel):
    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    risk_penalties: RiskPenalties = Field(default_factory=RiskPenalties)
    synonyms: Dict[str, List[str]] = Field(default_factory=dict)


class DedupeConfig(BaseModel):
    name_threshold: float = 0.9

    @field_validator("name_threshold")
    @classmethod
    def validate_threshold(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError("name_threshold must be in (0, 1]")
        return value


class Settings(BaseModel):
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    dedupe: DedupeConfig = Field(default_factory=DedupeConfig)


def _expand_env_vars(data: Any) -> Any:
    if isinstance(data, dict):
        return {k: _expand_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    if isinstance(data, str):
        return os.path.expandvars(data)
    return data


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    data = _expand_env_vars(data)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping at the top level.")
    return data


def _apply_env_credentials(sources: Dict[str, Any]) -> Dict[str, Any]:
    """Fill empty credentials from well-known environment variables."""
    env_map = {
        ("github", "token"): "GITHUB_TOKEN",
        ("stackoverflow", "key"): "STACKEXCHANGE_KEY",
        ("google", "api_key"): "GOOGLE_API_KEY",
        ("google", "cse_id"): "GOOGLE_CSE_ID",
        ("linkedin", "apify_token"): "APIFY_TOKEN",
    }
    merged = {name: dict(cfg or {}) for name, cfg in sources.items()}
    for (source, field), env_var in env_map.items():
        cfg = merged.setdefault(source, {})
        value = cfg.get(field)
        # Unset ${VAR} references survive expandvars verbatim
        if not value or str(value).startswith("${"):
            cfg[field] = os.environ.get(env_var, "")
    return merged


def load_settings(base_dir: Path | str) -> Settings:
    base = Path(base_dir)
    config_path = base / "config" / "config.yaml"
    config = _load_yaml(config_path)
    return Settings(
        collection=CollectionConfig(**config.get("collection", {})),
        sources=SourcesConfig(**_apply_env_credentials(config.get("sources", {}))),
        scoring=ScoringConfig(**config.get("scoring", {})),
        dedupe=DedupeConfig(**config.get("dedupe", {})),
    )


__all__ = [
    "Settings",
    "load_settings",
    "CollectionConfig",
    "SourcesConfig",
    "GitHubConfig",
    "StackOverflowConfig",
    "GoogleSearchConfig",
    "LinkedInConfig",
    "DevToConfig",
    "ScoreWeights",
    "RiskPenalties",
    "ScoringConfig",
    "DedupeConfig",
]

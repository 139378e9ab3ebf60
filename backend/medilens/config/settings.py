"""
Application Configuration

Settings and configuration management for the authenticity pipeline.
"""

from dataclasses import dataclass, field, fields
from typing import Optional, Dict, Any, List
from pathlib import Path
import os

from ..domain.exceptions import ConfigurationFailure
from ..domain.services.scoring import FactorWeights, VerdictThresholds


DEFAULT_INCLUDE_DOMAINS = [
    "drugs.com",
    "dailymed.nlm.nih.gov",
    "fda.gov",
    "who.int",
]


@dataclass
class VisionConfig:
    """Vision extraction and forensic inspection configuration."""

    type: str = "openai"  # openai, ollama
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None  # Only for OpenAI
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llava:7b"
    temperature: float = 0.1


@dataclass
class RetrievalConfig:
    """Reference retrieval configuration."""

    type: str = "exa"
    api_key: Optional[str] = None
    base_url: str = "https://api.exa.ai"
    num_results: int = 3
    include_domains: List[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE_DOMAINS))


@dataclass
class InterpretationConfig:
    """Interpretation and synthesis model configuration."""

    type: str = "groq"
    model: str = "llama-3.3-70b-versatile"
    api_key: Optional[str] = None
    temperature: float = 0.1


@dataclass
class ScoringConfig:
    """Scoring configuration. Weights must sum to 100."""

    mode: str = "local"  # local, delegated
    imprint_weight: int = 40
    color_weight: int = 20
    generic_identity_weight: int = 15
    shape_weight: int = 10
    source_reliability_weight: int = 15
    authentic_threshold: int = 85
    inconclusive_threshold: int = 65

    def weights(self) -> FactorWeights:
        return FactorWeights(
            imprint=self.imprint_weight,
            color=self.color_weight,
            generic_identity=self.generic_identity_weight,
            shape=self.shape_weight,
            source_reliability=self.source_reliability_weight,
        )

    def thresholds(self) -> VerdictThresholds:
        return VerdictThresholds(
            authentic=self.authentic_threshold,
            inconclusive=self.inconclusive_threshold,
        )


@dataclass
class PipelineConfig:
    """Per-stage timeouts in seconds."""

    extraction_timeout: float = 30.0
    research_timeout: float = 45.0
    inspection_timeout: float = 30.0
    synthesis_timeout: float = 30.0


@dataclass
class AdmissionConfig:
    """Admission controller configuration."""

    cooldown_seconds: float = 60.0
    results_dwell_seconds: float = 4.0
    store: str = "file"  # file, memory
    store_path: str = "./data/cooldown.json"
    storage_key: str = "medilens_cooldown_end"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    log_file: Optional[str] = None
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


_SECTIONS = ("vision", "retrieval", "interpretation", "scoring", "pipeline", "admission", "logging")


@dataclass
class AppConfig:
    """
    Main application configuration.

    Aggregates all component configurations.
    """

    vision: VisionConfig = field(default_factory=VisionConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    interpretation: InterpretationConfig = field(default_factory=InterpretationConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    admission: AdmissionConfig = field(default_factory=AdmissionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> "AppConfig":
        """
        Check internal consistency.

        Raises:
            ConfigurationFailure: If weights, thresholds or modes are invalid
        """
        problems = []

        try:
            self.scoring.weights()
        except ValueError as e:
            problems.append(str(e))
        try:
            self.scoring.thresholds()
        except ValueError as e:
            problems.append(str(e))

        if self.vision.type not in ("openai", "ollama"):
            problems.append(f"Unknown vision type: {self.vision.type}")
        if self.retrieval.type != "exa":
            problems.append(f"Unknown retrieval type: {self.retrieval.type}")
        if self.interpretation.type != "groq":
            problems.append(f"Unknown interpretation type: {self.interpretation.type}")
        if self.scoring.mode not in ("local", "delegated"):
            problems.append(f"Unknown scoring mode: {self.scoring.mode}")
        if self.admission.store not in ("file", "memory"):
            problems.append(f"Unknown cooldown store: {self.admission.store}")
        if self.admission.cooldown_seconds < 0 or self.admission.results_dwell_seconds < 0:
            problems.append("Cooldown and dwell durations must be non-negative")

        for name in ("extraction_timeout", "research_timeout", "inspection_timeout", "synthesis_timeout"):
            if getattr(self.pipeline, name) <= 0:
                problems.append(f"pipeline.{name} must be positive")

        if problems:
            raise ConfigurationFailure(
                message=f"Invalid configuration: {'; '.join(problems)}",
                details={"problems": problems}
            )
        return self

    def missing_credentials(self) -> List[str]:
        """Names of credentials required by the selected adapters but not set."""
        missing = []
        if self.vision.type == "openai" and not self.vision.api_key:
            missing.append("OPENAI_API_KEY")
        if self.retrieval.type == "exa" and not self.retrieval.api_key:
            missing.append("EXA_API_KEY")
        if self.interpretation.type == "groq" and not self.interpretation.api_key:
            missing.append("GROQ_API_KEY")
        return missing

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            MEDILENS_VISION_TYPE: Vision provider (openai/ollama)
            MEDILENS_VISION_MODEL: Vision model name
            MEDILENS_OLLAMA_BASE_URL: Ollama API URL
            MEDILENS_OLLAMA_MODEL: Ollama vision model name
            OPENAI_API_KEY: OpenAI API key
            EXA_API_KEY: Exa API key
            GROQ_API_KEY: Groq API key
            MEDILENS_INTERPRETATION_MODEL: Groq model name
            MEDILENS_SCORING_MODE: local/delegated
            MEDILENS_COOLDOWN_SECONDS: Cooldown after every run
            MEDILENS_RESULTS_DWELL_SECONDS: Minimum results display time
            MEDILENS_COOLDOWN_STORE: file/memory
            MEDILENS_DATA_DIR: Directory for the cooldown file
            MEDILENS_LOG_LEVEL: Logging level
        """
        config = cls()

        # Vision
        if vision_type := os.getenv("MEDILENS_VISION_TYPE"):
            config.vision.type = vision_type
        if model := os.getenv("MEDILENS_VISION_MODEL"):
            config.vision.model = model
        if base_url := os.getenv("MEDILENS_OLLAMA_BASE_URL"):
            config.vision.ollama_base_url = base_url
        if ollama_model := os.getenv("MEDILENS_OLLAMA_MODEL"):
            config.vision.ollama_model = ollama_model
        if api_key := os.getenv("MEDILENS_VISION_API_KEY"):
            config.vision.api_key = api_key
        elif api_key := os.getenv("OPENAI_API_KEY"):
            config.vision.api_key = api_key

        # Retrieval
        if api_key := os.getenv("EXA_API_KEY"):
            config.retrieval.api_key = api_key
        if domains := os.getenv("MEDILENS_INCLUDE_DOMAINS"):
            config.retrieval.include_domains = [d.strip() for d in domains.split(",") if d.strip()]

        # Interpretation
        if api_key := os.getenv("GROQ_API_KEY"):
            config.interpretation.api_key = api_key
        if model := os.getenv("MEDILENS_INTERPRETATION_MODEL"):
            config.interpretation.model = model

        # Scoring
        if mode := os.getenv("MEDILENS_SCORING_MODE"):
            config.scoring.mode = mode

        # Admission
        if cooldown := os.getenv("MEDILENS_COOLDOWN_SECONDS"):
            config.admission.cooldown_seconds = float(cooldown)
        if dwell := os.getenv("MEDILENS_RESULTS_DWELL_SECONDS"):
            config.admission.results_dwell_seconds = float(dwell)
        if store := os.getenv("MEDILENS_COOLDOWN_STORE"):
            config.admission.store = store
        if data_dir := os.getenv("MEDILENS_DATA_DIR"):
            config.admission.store_path = str(Path(data_dir) / "cooldown.json")

        # Logging
        if log_level := os.getenv("MEDILENS_LOG_LEVEL"):
            config.logging.level = log_level

        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        """Create configuration from dictionary; unknown keys are ignored."""
        config = cls()

        for section in _SECTIONS:
            if section in data:
                target = getattr(config, section)
                for key, value in data[section].items():
                    if hasattr(target, key):
                        setattr(target, key, value)

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary, without credentials."""
        result = {}
        for section in _SECTIONS:
            target = getattr(self, section)
            result[section] = {
                f.name: getattr(target, f.name)
                for f in fields(target)
                if f.name != "api_key"
            }
        return result


def get_default_config() -> AppConfig:
    """Get default application configuration."""
    return AppConfig.from_env()

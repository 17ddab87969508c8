"""Configuration system for hostpulse."""

from dataclasses import asdict, dataclass, field
from pathlib import Path

import tomlkit

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "hostpulse" / "config.toml"


@dataclass
class SamplingConfig:
    """What to sample and how often."""

    proc_root: str = "/proc"
    poll_rate: float = 1.0  # Seconds between samples
    top_n: int = 3  # Processes in the ranked list
    include_facts: bool = True  # Attach static host facts to each snapshot
    disk_path: str = "/"  # Filesystem reported as disk total/free


@dataclass
class LoggingConfig:
    level: str = "warning"
    json: bool = False  # JSON lines instead of console rendering


@dataclass
class Config:
    """Main configuration container."""

    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or DEFAULT_CONFIG_PATH
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        doc.add("sampling", tomlkit.item(asdict(self.sampling)))
        doc.add(tomlkit.nl())
        doc.add("logging", tomlkit.item(asdict(self.logging)))

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values."""
        path = path or DEFAULT_CONFIG_PATH
        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = tomlkit.load(f).unwrap()
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        sampling_data = data.get("sampling", {})
        logging_data = data.get("logging", {})
        for name, section in (("sampling", sampling_data), ("logging", logging_data)):
            if not isinstance(section, dict):
                raise ValueError(f"Invalid config file {path}: [{name}] must be a table")
        sampling_defaults = SamplingConfig()
        logging_defaults = LoggingConfig()

        return cls(
            sampling=SamplingConfig(
                proc_root=sampling_data.get("proc_root", sampling_defaults.proc_root),
                poll_rate=float(sampling_data.get("poll_rate", sampling_defaults.poll_rate)),
                top_n=int(sampling_data.get("top_n", sampling_defaults.top_n)),
                include_facts=sampling_data.get("include_facts", sampling_defaults.include_facts),
                disk_path=sampling_data.get("disk_path", sampling_defaults.disk_path),
            ),
            logging=LoggingConfig(
                level=logging_data.get("level", logging_defaults.level),
                json=logging_data.get("json", logging_defaults.json),
            ),
        )

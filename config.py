import tomllib
import shutil
import re
from pathlib import Path
from typing import Any, Dict, List, Optional
from dotenv import load_dotenv
import os

from models.settings import StudySettings

CONFIG_DIR = Path.home() / ".gatedstudy"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

DEFAULT_LEARNING_STEPS = [1, 10]
DEFAULT_RELEARN_STEPS = [10]
DEFAULT_BURY_DELAY_HOURS = 24


def parse_steps(raw: Any) -> List[float]:
    """Parse a step list from TOML or a comma-separated string, dropping junk and negatives."""
    if isinstance(raw, str):
        raw = raw.split(",")
    steps = []
    for item in raw or []:
        try:
            value = float(str(item).strip())
        except ValueError:
            continue
        if value >= 0:
            steps.append(value)
    return steps


def _first_set(value: Any, default: Any) -> Any:
    return default if value is None else value


def _env_flag(name: str, default: Any) -> bool:
    return os.getenv(name, str(default)).lower() == "true"


def load_config() -> Dict[str, Any]:
    """Load config from ~/.gatedstudy/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()  # Load .env for overrides (e.g., GATEDSTUDY_LEARNING_STEPS env var)
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)
    # Support the flat keys of the old plugin settings file while preferring nested tables
    legacy_scheduling = {
        "learning_steps": config.get("learningSteps"),
        "relearn_steps": config.get("relearnSteps"),
        "bury_delay_hours": config.get("buryDelayHours"),
    }

    scheduling_cfg = config.get("scheduling", {})
    config["scheduling"] = {
        "learning_steps": parse_steps(os.getenv(
            "GATEDSTUDY_LEARNING_STEPS",
            scheduling_cfg.get("learning_steps", _first_set(legacy_scheduling["learning_steps"], DEFAULT_LEARNING_STEPS))
        )),
        "relearn_steps": parse_steps(os.getenv(
            "GATEDSTUDY_RELEARN_STEPS",
            scheduling_cfg.get("relearn_steps", _first_set(legacy_scheduling["relearn_steps"], DEFAULT_RELEARN_STEPS))
        )),
        "bury_delay_hours": float(os.getenv(
            "GATEDSTUDY_BURY_DELAY_HOURS",
            scheduling_cfg.get("bury_delay_hours", _first_set(legacy_scheduling["bury_delay_hours"], DEFAULT_BURY_DELAY_HOURS))
        )),
    }
    queue_cfg = config.get("queue", {})
    config["queue"] = {
        "reviews_before_new_in_document_mode": _env_flag(
            "GATEDSTUDY_REVIEWS_BEFORE_NEW",
            queue_cfg.get("reviews_before_new_in_document_mode", False)
        ),
        "interleaving_enabled": _env_flag(
            "GATEDSTUDY_INTERLEAVING",
            queue_cfg.get("interleaving_enabled", True)
        ),
    }
    gating_cfg = config.get("gating", {})
    config["gating"] = {
        "enabled": _env_flag("GATEDSTUDY_GATING_ENABLED", gating_cfg.get("enabled", True)),
    }
    return config


def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('scheduling', 'learning_steps')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value


def load_study_settings(config: Optional[Dict[str, Any]] = None) -> StudySettings:
    """Build the validated settings object handed to the scheduler and queue."""
    if not config:
        config = load_config()
    return StudySettings(
        learning_steps=config["scheduling"]["learning_steps"],
        relearn_steps=config["scheduling"]["relearn_steps"],
        bury_delay_hours=config["scheduling"]["bury_delay_hours"],
        reviews_before_new_in_document_mode=config["queue"]["reviews_before_new_in_document_mode"],
        interleaving_enabled=config["queue"]["interleaving_enabled"],
        gating_enabled=config["gating"]["enabled"],
    )


def set_gating_enabled(enabled: bool) -> None:
    """Persist the gating switch into config.toml."""
    load_config()
    value = "true" if enabled else "false"
    text = CONFIG_PATH.read_text()
    if "[gating]" not in text:
        text = text.rstrip() + f"\n\n[gating]\nenabled = {value}\n"
        CONFIG_PATH.write_text(text)
        return

    def update_section(match: re.Match) -> str:
        section = match.group(1)
        rest = match.group(2)
        if re.search(r"^enabled\s*=", section, flags=re.MULTILINE):
            section = re.sub(
                r"^enabled\s*=.*$",
                f"enabled = {value}",
                section,
                flags=re.MULTILINE,
            )
        else:
            lines = section.rstrip().splitlines()
            insert_at = 1 if lines else 0
            lines.insert(insert_at, f"enabled = {value}")
            section = "\n".join(lines) + "\n"
        return section + rest

    text = re.sub(r"(?ms)(^\[gating\].*?)(^\[|\Z)", update_section, text)
    CONFIG_PATH.write_text(text)

"""Configuration management for the status bar rule engine."""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


class Config:
    OLLAMA_HOST: str = os.getenv("OLLAMA_HOST", "http://localhost:11434")
    MODEL_NAME: str = os.getenv("STATUSBAR_MODEL", "llama3:8b")

    RULES_PATH: Path = Path(os.getenv("STATUSBAR_RULES_PATH", "./data/regex_rules.json"))
    LOG_DIR: Path = Path(os.getenv("STATUSBAR_LOG_DIR", "./logs"))
    LOG_LEVEL: str = os.getenv("STATUSBAR_LOG_LEVEL", "INFO")

    # Regex engine
    MAX_REPORTED_MATCHES: int = 10
    DEFAULT_FLAGS: str = "g"
    PREVIEW_FLAGS: str = "gms"   # global + multiline + dot-all, for tags spanning lines


def setup_logging(level: str = None, log_dir: Path = None) -> None:
    """Send log records to a daily file under LOG_DIR and to stderr."""
    log_dir = Path(log_dir or Config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{datetime.now().strftime('%Y-%m-%d')}.log"

    logging.basicConfig(
        level=getattr(logging, (level or Config.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(sys.stderr),
        ]
    )

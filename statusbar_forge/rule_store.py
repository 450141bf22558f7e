"""JSON file store for regex rules, keyed by rule name."""

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from .config import Config
from .exceptions import RuleStoreError
from .tools.regex_builder import RegexRule

logger = logging.getLogger(__name__)


class RuleStore:
    """Persists rules; saving a rule whose name exists replaces it in place."""

    def __init__(self, path: Union[str, Path] = None):
        self.path = Path(path or Config.RULES_PATH)

    def _load_registry(self) -> dict:
        """Load the rules file, treating a missing or broken file as empty."""
        if not self.path.exists():
            return {"rules": []}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                registry = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Could not read rules from {self.path}: {e}")
            return {"rules": []}
        if not isinstance(registry, dict) or not isinstance(registry.get("rules"), list):
            logger.warning(f"Unexpected rules file layout in {self.path}")
            return {"rules": []}
        return registry

    def _save_registry(self, registry: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(registry, f, indent=4, ensure_ascii=False)
        except IOError as e:
            logger.error(f"Failed to save rules to {self.path}: {e}")
            raise RuleStoreError(f"Failed to save rules: {e}", str(self.path)) from e

    def load_all(self) -> List[RegexRule]:
        rules = []
        for data in self._load_registry()["rules"]:
            try:
                rules.append(RegexRule.from_dict(data))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed rule entry: {e}")
        return rules

    def get(self, name: str) -> Optional[RegexRule]:
        for rule in self.load_all():
            if rule.name == name:
                return rule
        return None

    def save(self, rule: RegexRule) -> str:
        """Save a rule.

        Returns:
            "replaced" if a rule with the same name existed, else "appended"
        """
        registry = self._load_registry()
        entries = registry["rules"]
        for position, entry in enumerate(entries):
            if isinstance(entry, dict) and entry.get("name") == rule.name:
                entries[position] = rule.to_dict()
                outcome = "replaced"
                break
        else:
            entries.append(rule.to_dict())
            outcome = "appended"

        self._save_registry(registry)
        logger.info(f"Rule {rule.name!r} {outcome} in {self.path}")
        return outcome

    def delete(self, name: str) -> bool:
        """Delete a rule by name. Returns False if there was none."""
        registry = self._load_registry()
        remaining = [e for e in registry["rules"] if not (isinstance(e, dict) and e.get("name") == name)]
        if len(remaining) == len(registry["rules"]):
            return False
        registry["rules"] = remaining
        self._save_registry(registry)
        logger.info(f"Rule {name!r} deleted from {self.path}")
        return True

"""Ollama API integration for drafting status bar rules."""

import logging
from typing import Any, Dict, Optional
import ollama

from .config import Config
from .exceptions import ModelCallError
from .prompts import build_generation_prompt
from .tools.section_extractor import ExtractedSections, SectionExtractor

logger = logging.getLogger(__name__)


class RuleDesignerBrain:
    """Asks the model for a rule and splits its answer into sections."""

    def __init__(
        self,
        client: Optional[ollama.Client] = None,
        model: str = Config.MODEL_NAME,
        host: str = Config.OLLAMA_HOST
    ):
        self.client = client or ollama.Client(host=host)
        self.model = model
        self.extractor = SectionExtractor()

    def think(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Send one prompt and return the model's reply text."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = self.client.chat(model=self.model, messages=messages)
        except (ollama.ResponseError, ConnectionError) as e:
            logger.error(f"Model call to {self.model} failed: {e}")
            raise ModelCallError(f"Model call to {self.model} failed: {e}") from e

        content = response["message"]["content"]
        if not content:
            raise ModelCallError(f"Model {self.model} returned an empty reply")
        return content

    def draft(
        self,
        description: str,
        fields: Optional[Dict[str, Dict[str, Any]]] = None,
        style: str = "roleplay"
    ) -> str:
        """Get the raw model answer for a status bar description."""
        prompt = build_generation_prompt(description, fields, style)
        logger.info(f"Drafting {style} status bar with {self.model}")
        return self.think(prompt, system_prompt=self._designer_prompt())

    def design(
        self,
        description: str,
        fields: Optional[Dict[str, Dict[str, Any]]] = None,
        style: str = "roleplay"
    ) -> ExtractedSections:
        """Draft a rule and extract its sections."""
        sections = self.extractor.extract(self.draft(description, fields, style))
        if not sections.has_anchors:
            logger.warning(f"Model answer is missing sections (tier={sections.tier})")
        return sections

    def _designer_prompt(self) -> str:
        return """You write regular-expression rules for chat status bars.
Follow the section format exactly. Do not explain."""

"""
Explanation Writer

Optionally rephrases already-computed scheduling explanations through an
OpenAI-compatible chat-completions endpoint. The model only sees structured
facts and the templated sentence; it never ranks or picks slots. Any failure
returns the templated sentence unchanged.
"""

import json
import logging
from typing import Dict, Optional, Any
from urllib.parse import urljoin

import aiohttp

from ..utils.config import TextGenerationConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a scheduling assistant. Rewrite the given explanation as one or two "
    "friendly sentences for a meeting organizer. Keep every number, name, date and "
    "time exactly as given and do not add facts. Respond with JSON: {\"text\": \"...\"}"
)

class ExplanationWriter:
    """Best-effort natural-language veneer over deterministic scheduling facts"""

    def __init__(self, text_config: TextGenerationConfig):
        """Initialize explanation writer"""
        self.settings = text_config
        self.session: Optional[aiohttp.ClientSession] = None
        self.is_initialized = False

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    async def initialize(self) -> bool:
        """Open the HTTP session when a model endpoint is configured"""
        if not self.enabled:
            logger.info("Explanation writer disabled - using templated explanations")
            return True

        try:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.timeout_seconds),
                headers={
                    "Authorization": f"Bearer {self.settings.api_key}",
                    "Content-Type": "application/json"
                }
            )
            self.is_initialized = True
            logger.info(f"Explanation writer initialized with model {self.settings.model}")
            return True

        except Exception as e:
            logger.error(f"Failed to initialize explanation writer: {str(e)}")
            return False

    async def phrase(self, template: str, facts: Dict[str, Any]) -> str:
        """
        Rephrase a templated explanation

        Args:
            template: Deterministic sentence built from the facts
            facts: Structured facts the sentence was built from

        Returns:
            The rephrased sentence, or the template when phrasing is unavailable
        """
        if not template or not self.enabled or self.session is None:
            return template

        payload = {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": json.dumps({"explanation": template, "facts": facts}, default=str)}
            ],
            "response_format": {"type": "json_object"}
        }
        url = urljoin(self.settings.api_url.rstrip('/') + '/', "chat/completions")

        try:
            async with self.session.post(url, json=payload) as response:
                if response.status != 200:
                    logger.warning(f"Explanation phrasing returned HTTP {response.status}; keeping template")
                    return template
                body = await response.json()

            content = body["choices"][0]["message"]["content"]
            text = json.loads(content).get("text", "").strip()
            if not text:
                logger.warning("Explanation phrasing returned empty text; keeping template")
                return template
            return text

        except Exception as e:
            logger.warning(f"Explanation phrasing failed ({type(e).__name__}: {str(e)}); keeping template")
            return template

    async def cleanup(self) -> None:
        """Cleanup resources"""
        if self.session is not None:
            await self.session.close()
            self.session = None
        self.is_initialized = False

__all__ = ['ExplanationWriter']

import hashlib
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Dict, Any

import requests
from django.conf import settings
from django.core.cache import cache

from stock.models import Product, Transaction

logger = logging.getLogger(__name__)


MISSING_KEY_MESSAGE = (
    "Gemini API key not found. Set the GEMINI_API_KEY environment variable to enable AI analysis."
)
ERROR_MESSAGE = "An error occurred while contacting the AI service. Please try again later."
EMPTY_MESSAGE = "The AI service returned no analysis."

RECENT_TRANSACTION_LIMIT = 20


@dataclass
class GeminiConfig:
    api_key: str
    model: str = "gemini-2.5-flash"
    timeout: int = 30
    max_retries: int = 2


class GeminiError(Exception):
    pass


class GeminiClient:

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def __init__(self, config: GeminiConfig):
        self.config = config
        self._url = self.BASE_URL.format(model=config.model)

    def generate(self, prompt: str) -> str:
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        error_msg = "No attempts made"

        for attempt in range(1, self.config.max_retries + 1):
            try:
                response = requests.post(
                    self._url,
                    params={"key": self.config.api_key},
                    json=payload,
                    timeout=self.config.timeout
                )

                if response.status_code == 200:
                    return self._extract_text(response.json())

                error_msg = f"Gemini API error: {response.status_code} - {response.text[:200]}"
                logger.warning(f"Attempt {attempt}/{self.config.max_retries}: {error_msg}")

            except requests.exceptions.ConnectionError:
                error_msg = "No internet connection"
                logger.warning(f"Attempt {attempt}/{self.config.max_retries}: {error_msg}")

            except requests.exceptions.Timeout:
                error_msg = "Request timed out"
                logger.warning(f"Attempt {attempt}/{self.config.max_retries}: {error_msg}")

            except requests.exceptions.RequestException as e:
                error_msg = f"Request failed: {str(e)}"
                logger.warning(f"Attempt {attempt}/{self.config.max_retries}: {error_msg}")

        raise GeminiError(error_msg)

    @staticmethod
    def _extract_text(body: Dict[str, Any]) -> str:
        try:
            parts = body["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            raise GeminiError(f"Unexpected Gemini response: {str(body)[:200]}")
        return "".join(part.get("text", "") for part in parts).strip()


def get_gemini_client(config: Optional[GeminiConfig] = None) -> Optional[GeminiClient]:
    if config is None:
        if not settings.GEMINI_API_KEY:
            return None
        config = GeminiConfig(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            timeout=settings.GEMINI_TIMEOUT,
            max_retries=settings.GEMINI_MAX_RETRIES,
        )
    return GeminiClient(config)


class InventoryAnalysisService:
    """Markdown restock advice from a Gemini model. Never raises: failures become fixed messages."""

    @classmethod
    def build_summary(cls) -> Dict[str, Any]:
        products = list(Product.objects.order_by("name"))
        low_stock = [p for p in products if p.current_stock <= p.min_stock]
        total_value = sum((p.current_stock * p.price for p in products), Decimal("0"))
        recent = Transaction.objects.order_by("-created_at", "-id")[:RECENT_TRANSACTION_LIMIT]

        return {
            "total_products": len(products),
            "total_value": str(total_value),
            "low_stock": [
                {"name": p.name, "current_stock": p.current_stock, "min_stock": p.min_stock}
                for p in low_stock
            ],
            "recent_transactions": [
                {
                    "type": tx.type,
                    "date": tx.date.isoformat(),
                    "ref": tx.reference_no,
                    "items": len(tx.items),
                }
                for tx in recent
            ],
        }

    @classmethod
    def build_prompt(cls, summary: Dict[str, Any]) -> str:
        low_stock = ", ".join(
            f"{item['name']} (left: {item['current_stock']}, min: {item['min_stock']})"
            for item in summary["low_stock"]
        ) or "none"

        return (
            "You are an AI warehouse manager assistant. Analyse the inventory data below and "
            "give short, well-formatted Markdown recommendations.\n\n"
            f"Language: {settings.AI_RESPONSE_LANGUAGE}.\n\n"
            "Summary:\n"
            f"- Total products: {summary['total_products']}\n"
            f"- Total stock value: {summary['total_value']}\n"
            f"- Low stock items: {low_stock}\n\n"
            "Recent transactions:\n"
            f"{json.dumps(summary['recent_transactions'])}\n\n"
            "Tasks:\n"
            "1. Give prioritised restock warnings.\n"
            "2. Briefly analyse the trend in the recent transactions (more goods in or out?).\n"
            "3. Suggest warehouse efficiency improvements.\n"
        )

    @classmethod
    def generate(cls, client: Optional[GeminiClient] = None) -> str:
        client = client or get_gemini_client()
        if client is None:
            return MISSING_KEY_MESSAGE

        try:
            prompt = cls.build_prompt(cls.build_summary())
        except Exception:
            logger.exception("Failed to build inventory summary for AI analysis")
            return ERROR_MESSAGE

        cache_key = "ai_analysis:" + hashlib.sha256(prompt.encode("utf-8")).hexdigest()
        cached = cache.get(cache_key)
        if cached:
            return cached

        try:
            text = client.generate(prompt)
        except GeminiError as e:
            logger.error(f"Gemini analysis failed: {e}")
            return ERROR_MESSAGE

        if not text:
            return EMPTY_MESSAGE

        cache.set(cache_key, text, settings.AI_ANALYSIS_CACHE_SECONDS)
        return text


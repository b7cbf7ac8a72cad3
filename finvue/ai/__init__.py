import json
import os
import re
import urllib.request
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Protocol

from finvue.core.currency import get_currency, is_supported
from finvue.core.models import (
    SUPPORTED_CURRENCIES,
    Currency,
    ParsedTransaction,
    Transaction,
    TransactionType,
    UserCategories,
    parse_date,
)
from huggingface_hub import InferenceClient
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

_OLLAMA_URL = "http://localhost:11434/api/chat"
_OPENAI_URL = "https://api.openai.com/v1/chat/completions"

EMPTY_INSIGHTS_MESSAGE = "Add some transactions to get started with AI insights!"
NO_INSIGHTS_MESSAGE = "Unable to generate insights at this moment."
ERROR_INSIGHTS_MESSAGE = "Error connecting to AI advisor. Please try again later."


class LLMProvider(Protocol):
    """A minimal protocol all concrete providers must implement."""

    def generate(self, messages: List[dict]) -> str:  # noqa: D401 – keep simple signature
        """Return the model reply given a list-of-dicts chat history."""


@dataclass
class LLMClient:
    """Simple client that delegates chat requests to an LLM provider."""
    provider: Optional[LLMProvider] = None

    def __post_init__(self) -> None:
        if self.provider is None:
            self.provider = get_provider_from_env()

    def chat(self, messages: List[dict]) -> str:
        return self.provider.generate(messages)


# -----------------------------------------------------------------------------
# Hugging Face Inference API provider
# -----------------------------------------------------------------------------

@dataclass
class HuggingFaceProvider:
    model: str
    token: Optional[str] = None

    def __post_init__(self) -> None:
        self._client = InferenceClient(api_key=self.token)

    def generate(self, messages: List[dict]) -> str:
        out = self._client.chat_completion(messages=messages, model=self.model)
        return (out.choices[0].message.content or "").strip()


# -----------------------------------------------------------------------------
# OpenAI Chat Completions provider
# -----------------------------------------------------------------------------

@dataclass
class OpenAIProvider:
    model: str
    api_key: str
    url: str = _OPENAI_URL

    def generate(self, messages: List[dict]) -> str:
        payload = {"model": self.model, "messages": messages}
        data = json.dumps(payload).encode()
        req = urllib.request.Request(self.url, data=data, method="POST")
        req.add_header("Content-Type", "application/json")
        req.add_header("Authorization", f"Bearer {self.api_key}")
        with urllib.request.urlopen(req, timeout=60) as resp:
            resp_data = json.load(resp)
        return (resp_data["choices"][0]["message"]["content"] or "").strip()


# -----------------------------------------------------------------------------
# Ollama provider
# -----------------------------------------------------------------------------

@dataclass
class OllamaProvider:
    model: str
    url: str = _OLLAMA_URL

    def _post(self, payload: dict) -> dict:
        data = json.dumps(payload).encode()
        logger.debug("Ollama POST %s payload: %s", self.url, payload)
        req = urllib.request.Request(self.url, data=data, method="POST")
        req.add_header("Content-Type", "application/json")

        with urllib.request.urlopen(req, timeout=120) as resp:
            raw = resp.read().decode()
            logger.debug("Ollama reply %s", raw)
            return json.loads(raw)

    def generate(self, messages: List[dict]) -> str:
        payload = {"model": self.model, "messages": messages, "stream": False}
        resp_data = self._post(payload)

        # /api/chat returns either {'message': str} or {'message': {'content': str}}
        msg = resp_data.get("message", "")
        if isinstance(msg, dict):
            msg = msg.get("content", "")
        if not isinstance(msg, str):
            raise RuntimeError(f"Unexpected Ollama response format: {resp_data}")
        return msg.strip()


def get_provider_from_env() -> LLMProvider:
    provider = os.environ.get("FINVUE_LLM_PROVIDER", "huggingface").lower()

    if provider == "openai":
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY not set")
        model = os.environ.get("FINVUE_LLM_MODEL", "gpt-4o-mini")
        return OpenAIProvider(model=model, api_key=api_key)

    if provider == "ollama":
        model = os.environ.get("FINVUE_LLM_MODEL", "phi3:mini")
        url = os.environ.get("OLLAMA_URL", _OLLAMA_URL)
        return OllamaProvider(model=model, url=url)

    token = os.environ.get("HF_API_TOKEN")
    model = os.environ.get("FINVUE_LLM_MODEL", "Qwen/Qwen3-32B")
    return HuggingFaceProvider(model=model, token=token)


# -----------------------------------------------------------------------------
# Prompt layers
# -----------------------------------------------------------------------------

class BaseAIOutput(ABC):
    """Composable layer for building prompts and parsing LLM responses."""

    @abstractmethod
    def build_messages(self, *args, **kwargs) -> List[dict]:
        """Return chat messages describing the task."""

    def ask(self, messages: List[dict], client: Optional[LLMClient] = None) -> str:
        client = client or LLMClient()
        return client.chat(messages)


def _tx_to_line(tx: Transaction, preferred: Currency) -> str:
    symbol = get_currency(tx.currency_code).symbol if is_supported(tx.currency_code) else preferred.symbol
    return (
        f"{tx.date.isoformat()}: {tx.type.value} of {symbol}{tx.amount:g} "
        f"({tx.currency_code}) for {tx.description or 'unspecified item'} ({tx.category})"
    )


class InsightsReport(BaseAIOutput):
    """Advisory summary of a multi-currency transaction history."""

    def build_messages(self, transactions: List[Transaction], currency: Currency) -> List[dict]:
        codes = ", ".join(c.code for c in SUPPORTED_CURRENCIES)
        lines = [_tx_to_line(tx, currency) for tx in transactions]
        return [
            {
                "role": "system",
                "content": (
                    "As a professional financial advisor, analyze the following "
                    "multi-currency transaction history. The user's preferred display "
                    f"currency is {currency.name} ({currency.code}). Identify spending "
                    "patterns, suggest potential savings, and give a \"Financial Health "
                    f"Score\" out of 100. Account for the different currencies ({codes}). "
                    "Format the response using Markdown with headers and bullet points."
                ),
            },
            {"role": "user", "content": "Transactions:\n" + "\n".join(lines)},
        ]

    def generate(
        self,
        transactions: List[Transaction],
        currency: Currency,
        client: Optional[LLMClient] = None,
    ) -> str:
        if not transactions:
            return EMPTY_INSIGHTS_MESSAGE
        messages = self.build_messages(transactions, currency)
        try:
            out = self.ask(messages, client)
        except Exception as e:
            logger.error("Insights request failed: %s", e)
            return ERROR_INSIGHTS_MESSAGE
        return out or NO_INSIGHTS_MESSAGE


_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_REQUIRED = ("description", "amount", "category", "type", "date", "currencyCode")


class TransactionParser(BaseAIOutput):
    """Turns a free-text note such as "lunch 12 eur yesterday" into fields."""

    def build_messages(self, text: str, categories: UserCategories, today: date) -> List[dict]:
        codes = ", ".join(c.code for c in SUPPORTED_CURRENCIES)
        return [
            {
                "role": "system",
                "content": (
                    "Parse the financial transaction description into a JSON object with "
                    "the keys description, amount, category, type, date, currencyCode. "
                    "Reply with the JSON object only.\n"
                    f"Current Date: {today.isoformat()}\n"
                    f"Valid Expense Categories: {', '.join(categories.expense)}\n"
                    f"Valid Income Categories: {', '.join(categories.income)}\n"
                    f"Supported Currencies: {codes}\n"
                    "type is either 'expense' or 'income'. date is YYYY-MM-DD. "
                    "If the category isn't an exact match, map it to the closest valid "
                    f"category. If the date isn't mentioned, assume today ({today.isoformat()}). "
                    "Handle relative terms like \"yesterday\" or \"last Friday\". "
                    f"If no currency is mentioned, default to {SUPPORTED_CURRENCIES[0].code}."
                ),
            },
            {"role": "user", "content": text},
        ]

    def post_process(self, response: str) -> Optional[ParsedTransaction]:
        payload = json.loads(_FENCE.sub("", (response or "").strip()) or "{}")
        if not isinstance(payload, dict) or any(k not in payload for k in _REQUIRED):
            return None
        amount = payload["amount"]
        if isinstance(amount, bool) or not isinstance(amount, (int, float, str)):
            return None
        return ParsedTransaction(
            description=str(payload["description"] or ""),
            amount=float(amount),
            category=str(payload["category"]),
            type=TransactionType(payload["type"]),
            date=parse_date(payload["date"]),
            currency_code=str(payload["currencyCode"]).upper(),
        )

    def generate(
        self,
        text: str,
        categories: UserCategories,
        client: Optional[LLMClient] = None,
        today: Optional[date] = None,
    ) -> Optional[ParsedTransaction]:
        if not (text or "").strip():
            return None
        messages = self.build_messages(text, categories, today or date.today())
        try:
            return self.post_process(self.ask(messages, client))
        except Exception as e:
            logger.error("Parsing request failed: %s", e)
            return None


# -----------------------------------------------------------------------------
# Public helpers
# -----------------------------------------------------------------------------

def get_insights(
    transactions: List[Transaction],
    currency: Currency,
    client: Optional[LLMProvider] = None,
) -> str:
    """Return advisory text; never contacts a provider for an empty history."""
    if not transactions:
        return EMPTY_INSIGHTS_MESSAGE
    try:
        llm = LLMClient(client)
    except Exception as e:
        logger.error("No LLM provider available: %s", e)
        return ERROR_INSIGHTS_MESSAGE
    return InsightsReport().generate(transactions, currency, llm)


def parse_transaction(
    text: str,
    categories: UserCategories,
    client: Optional[LLMProvider] = None,
    today: Optional[date] = None,
) -> Optional[ParsedTransaction]:
    """Best-effort natural-language parse; ``None`` on any failure."""
    try:
        llm = LLMClient(client)
    except Exception as e:
        logger.error("No LLM provider available: %s", e)
        return None
    return TransactionParser().generate(text, categories, llm, today)

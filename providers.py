import enum
import logging
from typing import Dict, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config import ProviderConfig, Settings


logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    UNCONFIGURED = "unconfigured"
    AUTH_FAILED = "auth_failed"
    QUOTA_EXCEEDED = "quota_exceeded"
    MODEL_NOT_FOUND = "model_not_found"
    UPSTREAM = "upstream"


class ProviderError(Exception):
    def __init__(self, kind: ErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message


def _create_session() -> requests.Session:
    # One attempt per translation; failures go straight back to the caller.
    retry = Retry(total=0, read=False, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class CompletionProvider:
    name = "base"
    credential_env = ""

    def __init__(
        self, config: ProviderConfig, session: Optional[requests.Session] = None
    ) -> None:
        self.config = config
        self.session = session or _create_session()

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key)

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        raise NotImplementedError


class ChatCompletionsProvider(CompletionProvider):
    endpoint = ""

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    def _redact(self, message: str) -> str:
        if self.config.api_key:
            message = message.replace(self.config.api_key, "***")
        return message

    def _error_details(self, response: requests.Response) -> Tuple[str, str]:
        try:
            data = response.json()
        except ValueError:
            return "", response.text[:1000]
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict):
            return str(error.get("code") or ""), str(error.get("message") or "")
        if error:
            return "", str(error)
        return "", response.text[:1000]

    def classify(self, status_code: int, code: str, message: str) -> ErrorKind:
        if status_code == 401 or code == "invalid_api_key":
            return ErrorKind.AUTH_FAILED
        if status_code == 429 or code in ("insufficient_quota", "rate_limit_exceeded"):
            return ErrorKind.QUOTA_EXCEEDED
        if code == "model_not_found" or (
            status_code == 404 and "model" in message.lower()
        ):
            return ErrorKind.MODEL_NOT_FOUND
        return ErrorKind.UPSTREAM

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        if not self.configured:
            raise ProviderError(
                ErrorKind.UNCONFIGURED, f"{self.credential_env} is missing"
            )

        body = {
            "model": self.config.model,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        try:
            response = self.session.post(
                self.endpoint,
                headers=self._headers(),
                json=body,
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderError(ErrorKind.UPSTREAM, self._redact(str(exc))) from exc

        if response.status_code != 200:
            code, message = self._error_details(response)
            kind = self.classify(response.status_code, code, message)
            logger.warning(
                "provider=%s status=%s code=%s kind=%s",
                self.name,
                response.status_code,
                code or None,
                kind.value,
            )
            raise ProviderError(kind, self._redact(message))

        try:
            data = response.json()
        except ValueError:
            raise ProviderError(ErrorKind.UPSTREAM, "invalid JSON in provider response") from None
        if isinstance(data, dict) and data.get("error"):
            raise ProviderError(ErrorKind.UPSTREAM, self._redact(str(data["error"])))

        try:
            choice = data["choices"][0]
            content = choice["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise ProviderError(ErrorKind.UPSTREAM, "malformed provider response") from None

        finish_reason = choice.get("finish_reason")
        if finish_reason == "content_filter":
            raise ProviderError(ErrorKind.UPSTREAM, "content_filter")
        translated = (content or "").strip()
        if not translated:
            raise ProviderError(ErrorKind.UPSTREAM, "empty completion")
        if finish_reason == "length":
            logger.warning(
                "provider=%s finish_reason=length max_tokens=%s",
                self.name,
                self.config.max_tokens,
            )
        return translated


class OpenAIProvider(ChatCompletionsProvider):
    name = "openai"
    credential_env = "OPENAI_API_KEY"
    endpoint = "https://api.openai.com/v1/chat/completions"


class OpenRouterProvider(ChatCompletionsProvider):
    name = "openrouter"
    credential_env = "OPENROUTER_API_KEY"
    endpoint = "https://openrouter.ai/api/v1/chat/completions"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["X-Title"] = "Tradutor Literario"
        return headers

    def classify(self, status_code: int, code: str, message: str) -> ErrorKind:
        # OpenRouter reports exhausted credits as 402 and bad model ids as 400.
        if status_code == 402:
            return ErrorKind.QUOTA_EXCEEDED
        if status_code == 400 and "not a valid model" in message.lower():
            return ErrorKind.MODEL_NOT_FOUND
        return super().classify(status_code, code, message)


PROVIDERS = {
    OpenAIProvider.name: OpenAIProvider,
    OpenRouterProvider.name: OpenRouterProvider,
}


def build_provider(
    settings: Settings, session: Optional[requests.Session] = None
) -> CompletionProvider:
    provider_cls = PROVIDERS.get(settings.provider)
    if provider_cls is None:
        raise RuntimeError(
            f"Unsupported TRANSLATION_PROVIDER {settings.provider!r}; "
            f"expected one of {', '.join(sorted(PROVIDERS))}"
        )
    provider = provider_cls(settings.provider_config(), session=session)
    if not provider.configured:
        logger.warning("provider=%s %s is missing", provider.name, provider.credential_env)
    return provider

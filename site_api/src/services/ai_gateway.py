"""
AI proxy gateway.

Forwards a validated prompt to one upstream generative-AI provider and
returns the provider's JSON payload unchanged. Upstream failures are
classified into the site error taxonomy:

- 429 from the provider            -> UpstreamRejected (429)
- 401 (and 403 for Gemini)         -> ConfigurationError (500)
- refused / unknown host / timeout -> UpstreamUnreachable (502)
- anything else non-2xx            -> UpstreamRejected (502)

API keys never leave the server: they are sent as request headers, and
neither keys nor upstream error bodies are logged or returned.
"""

import time
from typing import Any, Dict, FrozenSet, Optional

import httpx
import structlog
from pydantic import SecretStr

from shared.metrics import SiteMetrics
from site_api.src.config import Settings
from site_api.src.errors import (
    ConfigurationError,
    UpstreamRejected,
    UpstreamUnreachable,
)

logger = structlog.get_logger(__name__)


class AIProvider:
    """Describes how to call one upstream provider."""

    name: str = ""
    display_name: str = ""
    # Upstream statuses that mean our credentials are wrong.
    credential_statuses: FrozenSet[int] = frozenset({401})

    def __init__(self, api_key: Optional[SecretStr]):
        self._api_key = api_key

    @property
    def configured(self) -> bool:
        return self._api_key is not None

    def api_key(self) -> str:
        if self._api_key is None:
            raise ConfigurationError(
                f"{self.display_name} API key is not set", provider=self.display_name
            )
        return self._api_key.get_secret_value()

    def build_request(self, prompt: str) -> Dict[str, Any]:
        """Return keyword arguments for ``httpx.AsyncClient.post``."""
        raise NotImplementedError


class AnthropicProvider(AIProvider):
    """Anthropic Messages API."""

    name = "anthropic"
    display_name = "Anthropic"

    def __init__(self, settings: Settings):
        super().__init__(settings.anthropic_api_key)
        self.url = settings.anthropic_api_url
        self.model = settings.anthropic_model
        self.version = settings.anthropic_version
        self.max_tokens = settings.anthropic_max_tokens

    def build_request(self, prompt: str) -> Dict[str, Any]:
        return {
            "url": self.url,
            "json": {
                "model": self.model,
                "max_tokens": self.max_tokens,
                "messages": [{"role": "user", "content": prompt}],
            },
            "headers": {
                "Content-Type": "application/json",
                "x-api-key": self.api_key(),
                "anthropic-version": self.version,
            },
        }


class GeminiProvider(AIProvider):
    """Google Gemini generateContent API."""

    name = "gemini"
    display_name = "Gemini"
    credential_statuses = frozenset({401, 403})

    def __init__(self, settings: Settings):
        super().__init__(settings.gemini_api_key)
        base = settings.gemini_api_base_url.rstrip("/")
        self.url = f"{base}/v1beta/models/{settings.gemini_model}:generateContent"

    def build_request(self, prompt: str) -> Dict[str, Any]:
        return {
            "url": self.url,
            "json": {"contents": [{"parts": [{"text": prompt}]}]},
            "headers": {
                "Content-Type": "application/json",
                "x-goog-api-key": self.api_key(),
            },
        }


class AIProxyGateway:
    """Routes prompts to the configured upstream providers."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        metrics: Optional[SiteMetrics] = None,
    ):
        """
        Initialize the gateway.

        Args:
            settings: Application settings (keys, URLs, models)
            client: Shared HTTP client; its timeout bounds every upstream call
            metrics: Optional metrics sink
        """
        self.client = client
        self.metrics = metrics
        self.providers: Dict[str, AIProvider] = {
            provider.name: provider
            for provider in (AnthropicProvider(settings), GeminiProvider(settings))
        }

    def provider(self, name: str) -> AIProvider:
        return self.providers[name]

    async def generate(self, provider_name: str, prompt: str) -> Any:
        """
        Forward a prompt to a provider.

        Args:
            provider_name: "anthropic" or "gemini"
            prompt: Validated, non-empty prompt

        Returns:
            Decoded JSON payload returned by the provider

        Raises:
            ConfigurationError: Key missing, or rejected by the provider
            UpstreamUnreachable: Connection failed or timed out
            UpstreamRejected: Provider answered with another error status
        """
        provider = self.provider(provider_name)

        try:
            request_kwargs = provider.build_request(prompt)
        except ConfigurationError as e:
            logger.error("ai_provider_key_missing", provider=provider.name, reason=e.reason)
            self._record(provider, "config_error")
            raise

        start_time = time.monotonic()
        try:
            response = await self.client.post(**request_kwargs)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise self._classify_status(provider, e.response.status_code) from e
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            timed_out = isinstance(e, httpx.TimeoutException)
            logger.error(
                "ai_provider_unreachable",
                provider=provider.name,
                error_type=type(e).__name__,
                timed_out=timed_out,
            )
            self._record(provider, "timeout" if timed_out else "unreachable")
            raise UpstreamUnreachable(provider.display_name, timed_out=timed_out) from e
        except (httpx.HTTPError, ValueError) as e:
            # Transport errors other than connect/timeout, or a non-JSON body.
            logger.error(
                "ai_provider_request_failed",
                provider=provider.name,
                error_type=type(e).__name__,
            )
            self._record(provider, "upstream_error")
            raise UpstreamRejected(
                f"{provider.display_name} API request failed", provider=provider.display_name
            ) from e
        finally:
            if self.metrics is not None:
                self.metrics.ai_proxy_duration.labels(provider=provider.name).observe(
                    time.monotonic() - start_time
                )

        logger.info("ai_provider_request_succeeded", provider=provider.name)
        self._record(provider, "success")
        return payload

    def _classify_status(self, provider: AIProvider, status_code: int) -> Exception:
        """Map an upstream error status onto the error taxonomy."""
        if status_code == 429:
            logger.warning("ai_provider_rate_limited", provider=provider.name, status_code=status_code)
            self._record(provider, "rate_limited")
            return UpstreamRejected(
                "Rate limit exceeded - please try again later",
                provider=provider.display_name,
                status_code=429,
                upstream_status=status_code,
            )

        if status_code in provider.credential_statuses:
            logger.error(
                "ai_provider_credentials_rejected",
                provider=provider.name,
                status_code=status_code,
            )
            self._record(provider, "config_error")
            return ConfigurationError(
                f"{provider.display_name} rejected the API key ({status_code})",
                provider=provider.display_name,
            )

        logger.error("ai_provider_request_failed", provider=provider.name, status_code=status_code)
        self._record(provider, "upstream_error")
        return UpstreamRejected(
            f"{provider.display_name} API request failed",
            provider=provider.display_name,
            upstream_status=status_code,
        )

    def _record(self, provider: AIProvider, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.ai_proxy_requests.labels(provider=provider.name, outcome=outcome).inc()

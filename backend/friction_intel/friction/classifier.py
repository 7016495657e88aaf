"""LLM friction classifier: one support case in, one FrictionVerdict out."""

from typing import Protocol

import anthropic
import structlog
from anthropic import AsyncAnthropic

from friction_intel.config import settings
from friction_intel.errors import ClassificationAPIError, ConfigurationError, TransientServiceError
from friction_intel.friction.pacing import RetryPolicy
from friction_intel.friction.prompts import build_classification_prompt
from friction_intel.friction.verdict import FrictionVerdict, parse_verdict

logger = structlog.get_logger()

RETRYABLE_STATUSES = {429, 529}


class Classifier(Protocol):
    def ensure_configured(self) -> None: ...

    async def classify(self, case_text: str) -> FrictionVerdict: ...


class FrictionClassifier:
    """Classifies case text with Claude using the friction rubric.

    Retries rate-limit and overload responses per ``retry_policy``. Pacing
    between cases is the caller's job.
    """

    def __init__(
        self,
        client: AsyncAnthropic | None = None,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        self.api_key = settings.ANTHROPIC_API_KEY if api_key is None else api_key
        self.model = model or settings.CLASSIFIER_MODEL
        self.max_tokens = max_tokens or settings.CLASSIFIER_MAX_TOKENS
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self._client = client

    def ensure_configured(self) -> None:
        if self._client is None and not self.api_key:
            raise ConfigurationError(
                "Classification service is not configured. Set ANTHROPIC_API_KEY.",
            )

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            self.ensure_configured()
            # Retries are handled by RetryPolicy so backoff stays visible and bounded
            self._client = AsyncAnthropic(api_key=self.api_key, max_retries=0)
        return self._client

    async def classify(self, case_text: str) -> FrictionVerdict:
        prompt = build_classification_prompt(case_text)
        text = await self.retry_policy.run(lambda: self._complete(prompt))
        return parse_verdict(text)

    async def _complete(self, prompt: str) -> str:
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise ConfigurationError(
                f"Classification service rejected credentials: {e.message}",
                {"status": e.status_code},
            ) from e
        except anthropic.APIStatusError as e:
            if e.status_code in RETRYABLE_STATUSES or e.status_code >= 500:
                raise TransientServiceError(
                    f"API busy ({e.status_code})", {"status": e.status_code}, status=e.status_code,
                ) from e
            raise ClassificationAPIError(
                f"API Error {e.status_code}: {e.message}", {"status": e.status_code},
            ) from e
        except anthropic.APIConnectionError as e:
            raise TransientServiceError(f"Classification service unreachable: {e}") from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

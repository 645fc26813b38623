"""Translation provider abstractions."""

from __future__ import annotations

import json
import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from .configuration import (
    DEFAULT_MODEL,
    BabelJsonConfig,
    get_settings,
    require_provider_credentials,
)
from .errors import (
    FailureKind,
    TranslationProviderConfigurationError,
    TranslationServiceError,
)

SYSTEM_PROMPT_TEMPLATE = """\
You are a professional localizer for product UIs.
Translate from English into {target_language} in a {tone}.
STRICT RULES:
- Translate ONLY the user-visible text.
- Tokens such as §T0§ stand for placeholders, markup or brand names. Copy every token exactly, once, in a natural position.
- Preserve placeholders exactly: {{msg}}, {{ email }}, {{0}}, %s, %d, {{{{var}}}}, :name, etc.
- Preserve ALL HTML tags & attributes unchanged (translate only visible text between tags).
- Keep brand/product names as-is.
- Use proper accents and punctuation for the target language.
- Be concise and natural for UI strings."""

USER_PROMPT_TEMPLATE = """\
The previous message is a JSON array of input strings (tokenized). Translate EACH element into {target_language}, following ALL rules above.
Return ONLY a JSON object with this exact shape and count:
{{"translations": ["<translated-1>", "<translated-2>", ...]}}
The array holds exactly {count} items in the same order.
- Do not add explanations or extra fields.
- If a string should remain unchanged, return it unchanged (NOT '---')."""


def response_schema(count: int) -> Dict[str, Any]:
    """JSON schema forcing a translations array of exactly ``count`` strings."""

    return {
        "type": "object",
        "properties": {
            "translations": {
                "type": "array",
                "items": {"type": "string"},
                "minItems": count,
                "maxItems": count,
            }
        },
        "required": ["translations"],
        "additionalProperties": False,
    }


def _service_error(exc: Exception) -> TranslationServiceError:
    """Wrap an SDK exception, keeping HTTP status failures apart from transport ones."""

    status = getattr(exc, "status_code", None)
    if status is not None:
        return TranslationServiceError(
            f"Translation service returned HTTP {status}: {exc}",
            FailureKind.STATUS,
        )
    return TranslationServiceError(
        f"Translation service temporarily unavailable: {exc}",
        FailureKind.NETWORK,
    )


class TranslationProvider(ABC):
    """Abstract adapter for translation providers.

    Implementations return one translated string per input, in input order, or
    raise :class:`TranslationServiceError`. Order is trusted: nothing checks
    that the service kept each translation at its input's position.
    """

    @abstractmethod
    def translate(
        self,
        texts: Sequence[str],
        *,
        target_language: str,
        tone: str,
        model: str | None = None,
    ) -> List[str]:
        """Translate the provided strings and return them in order."""


class EchoTranslationProvider(TranslationProvider):
    """A provider that returns the original text (useful for testing)."""

    def translate(
        self,
        texts: Sequence[str],
        *,
        target_language: str,
        tone: str,
        model: str | None = None,
    ) -> List[str]:
        return list(texts)


class OpenAITranslationProvider(TranslationProvider):
    """Translation provider that uses the OpenAI Responses API."""

    DEFAULT_MODEL = DEFAULT_MODEL
    TEMPERATURE = 0.1

    def __init__(
        self,
        *,
        settings: BabelJsonConfig | None = None,
        timeout: float = 90.0,
        debug: bool = False,
        client: Any = None,
    ) -> None:
        self.debug = debug
        self.timeout = timeout
        self.settings = settings
        if client is not None:
            self._client, self._default_model = client, self.DEFAULT_MODEL
            return
        self.settings = settings or get_settings()
        require_provider_credentials(self.settings)
        self._client, self._default_model = self._build_client()

    def _build_client(self) -> tuple[Any, str]:
        if self.settings.LLM_PROVIDER == "azure_openai":
            return self._build_azure_client()

        return self._build_openai_client()

    def _build_openai_client(self) -> tuple[Any, str]:
        try:
            from openai import OpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TranslationProviderConfigurationError(
                "OpenAI Python SDK not installed. Install with `pip install openai`."
            ) from exc

        client = OpenAI(
            api_key=self.settings.OPENAI_API_KEY,
            timeout=self.timeout,
            max_retries=0,
        )
        return client, self.settings.BABELJSON_MODEL or self.DEFAULT_MODEL

    def _build_azure_client(self) -> tuple[Any, str]:
        try:
            from openai import AzureOpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TranslationProviderConfigurationError(
                "OpenAI Python SDK not installed. Install with `pip install openai`."
            ) from exc

        client = AzureOpenAI(
            api_key=self.settings.AZURE_OPENAI_API_KEY,
            api_version=self.settings.AZURE_OPENAI_API_VERSION,
            azure_endpoint=self.settings.AZURE_OPENAI_ENDPOINT,
            timeout=self.timeout,
            max_retries=0,
        )
        return client, self.settings.AZURE_OPENAI_DEPLOYMENT_NAME  # type: ignore[return-value]

    def translate(
        self,
        texts: Sequence[str],
        *,
        target_language: str,
        tone: str,
        model: str | None = None,
    ) -> List[str]:
        if not texts:
            return []

        system_prompt = SYSTEM_PROMPT_TEMPLATE.format(
            target_language=target_language,
            tone=tone,
        )
        items_json = json.dumps(list(texts), ensure_ascii=False, separators=(",", ":"))
        instructions = USER_PROMPT_TEMPLATE.format(
            target_language=target_language,
            count=len(texts),
        )
        self._log_debug("provider.request.system_prompt", system_prompt)
        self._log_debug("provider.request.items", list(texts))

        translations = self._invoke_model(
            system_prompt=system_prompt,
            items_json=items_json,
            instructions=instructions,
            schema=response_schema(len(texts)),
            model=model or self._default_model,
        )
        self._log_debug("provider.response.translations", translations)

        if not all(isinstance(item, str) for item in translations):
            raise TranslationServiceError(
                "Translation provider response malformed: expected strings.",
                FailureKind.MALFORMED,
            )
        return translations

    def _invoke_model(
        self,
        *,
        system_prompt: str,
        items_json: str,
        instructions: str,
        schema: Dict[str, Any],
        model: str,
    ) -> list[Any]:
        """Call the OpenAI Responses API and return the translations array."""

        try:
            response = self._client.responses.create(
                model=model,
                input=[
                    {
                        "role": "system",
                        "content": [
                            {"type": "input_text", "text": system_prompt},
                        ],
                    },
                    {
                        "role": "user",
                        "content": [
                            {"type": "input_text", "text": items_json},
                            {"type": "input_text", "text": instructions},
                        ],
                    },
                ],
                temperature=self.TEMPERATURE,
                text={
                    "format": {
                        "type": "json_schema",
                        "name": "batch_translations",
                        "schema": schema,
                    }
                },
                timeout=self.timeout,
            )
        except Exception as exc:  # pragma: no cover - network call
            raise _service_error(exc) from exc
        payload = self._safe_dump_response(response)
        self._log_debug("provider.response.raw", payload)
        return self._extract_translations(payload)

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not getattr(self, "debug", False):
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        print(f"[babeljson][provider-debug] {label}:\n{message}", file=sys.stderr)

    def _safe_dump_response(self, response: Any) -> Any:
        """Best-effort conversion of SDK response objects into plain data."""

        if isinstance(response, (dict, list, str)):
            return response
        data: Any = None
        for attr in ("model_dump", "model_dump_json"):
            candidate = getattr(response, attr, None)
            if candidate:
                try:
                    data = candidate()
                    if isinstance(data, str):
                        data = json.loads(data)
                    break
                except (TypeError, ValueError):
                    continue
        if isinstance(data, dict) and not data.get("output_text"):
            # The SDK exposes output_text as a property, so it is not dumped.
            output_text = getattr(response, "output_text", None)
            if isinstance(output_text, str) and output_text:
                data["output_text"] = output_text
        if data is None:
            return str(response)
        return data

    def _strip_code_fence(self, text: str) -> str:
        """Remove leading/trailing markdown code fences if present."""

        stripped = text.strip()
        if not stripped.startswith("```"):
            return stripped

        # Drop opening fence and optional language hint.
        first_newline = stripped.find("\n")
        if first_newline == -1:
            return stripped.strip("`").strip()
        body = stripped[first_newline + 1 :]
        closing_index = body.rfind("```")
        if closing_index != -1:
            body = body[:closing_index]
        return body.strip()

    def _extract_translations(self, payload: Any) -> list[Any]:
        """Find the translations array in a response payload.

        Looks at the structured ``parsed`` output first, then at the response
        text, and finally treats the payload itself as the expected JSON.
        """

        if isinstance(payload, dict):
            for item in payload.get("output") or []:
                if not isinstance(item, dict):
                    continue
                for part in item.get("content") or []:
                    if not isinstance(part, dict):
                        continue
                    parsed = part.get("parsed")
                    if isinstance(parsed, dict) and isinstance(
                        parsed.get("translations"), list
                    ):
                        return parsed["translations"]

            text_value = self._locate_text(payload)
            if text_value:
                return self._normalise_translations(text_value)

        if payload:
            return self._normalise_translations(payload)

        raise TranslationServiceError(
            "Could not locate JSON content in the translation response.",
            FailureKind.MALFORMED,
        )

    def _locate_text(self, payload: Dict[str, Any]) -> str | None:
        output_text = payload.get("output_text")
        if isinstance(output_text, str) and output_text.strip():
            return output_text

        try:
            text_value = payload["output"][0]["content"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text_value = None
        if isinstance(text_value, str) and text_value.strip():
            return text_value

        try:
            message_content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            message_content = None
        if isinstance(message_content, str) and message_content.strip():
            return message_content
        return None

    def _normalise_translations(self, payload: Any) -> list[Any]:
        """Normalise raw payloads into the list of translated strings."""

        if isinstance(payload, str):
            payload = self._strip_code_fence(payload)
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as exc:
                raise TranslationServiceError(
                    f"Translation provider returned invalid JSON: {exc}",
                    FailureKind.MALFORMED,
                ) from exc

        if isinstance(payload, dict):
            translations = payload.get("translations")
            if isinstance(translations, list):
                return translations
            arrays = [value for value in payload.values() if isinstance(value, list)]
            if len(arrays) == 1:
                return arrays[0]

        if isinstance(payload, list):
            return payload

        raise TranslationServiceError(
            "Translation provider response malformed: could not find translations list.",
            FailureKind.MALFORMED,
        )


class LegacyOpenAITranslationProvider(OpenAITranslationProvider):
    """Translation provider that uses the Chat Completions API for compatibility."""

    def _invoke_model(
        self,
        *,
        system_prompt: str,
        items_json: str,
        instructions: str,
        schema: Dict[str, Any],
        model: str,
    ) -> list[Any]:
        """Call the Chat Completions API and return the translations array."""

        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=self.TEMPERATURE,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": f"{items_json}\n\n{instructions}"},
                ],
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": "batch_translations", "schema": schema},
                },
                timeout=self.timeout,
            )
        except Exception as exc:  # pragma: no cover - network call
            raise _service_error(exc) from exc
        payload = self._safe_dump_response(response)
        self._log_debug("provider.response.raw", payload)
        return self._extract_translations(payload)


def build_provider(
    name: str | None,
    *,
    settings: BabelJsonConfig | None = None,
    timeout: float = 90.0,
    debug: bool = False,
) -> TranslationProvider:
    """Factory to create providers by name."""

    normalized = (name or "openai").strip().lower()
    if normalized in {"openai", "gpt", "default"}:
        return OpenAITranslationProvider(settings=settings, timeout=timeout, debug=debug)
    if normalized in {"legacy-openai", "legacy_openai", "legacy", "openai-legacy"}:
        return LegacyOpenAITranslationProvider(
            settings=settings, timeout=timeout, debug=debug
        )
    if normalized in {"echo", "noop", "mock"}:
        return EchoTranslationProvider()
    raise TranslationProviderConfigurationError(
        f"Unknown translation provider '{name}'."
    )

"""Model gateway: structured-JSON and free-text completions over the Anthropic API."""

import asyncio
import json
import logging
import os
import re

import anthropic
from pydantic import ValidationError

from config.defaults import DEFAULTS, DEFAULT_PROVIDER_URL

logger = logging.getLogger(__name__)

JSON_INSTRUCTION = "IMPORTANT: Respond ONLY with valid JSON. No markdown fences, no commentary."

_FENCE_RE = re.compile(r"^```[\w-]*[ \t]*\n?(.*?)\n?[ \t]*```$", re.DOTALL)


class LLMError(RuntimeError):
    """The model could not produce a usable answer within the retry bound."""


class InvalidStructuredOutput(LLMError):
    """A structured completion did not parse or did not match its shape."""


def get_client(provider_url=None):
    """Return an async Anthropic client. Raises if no API key is set."""
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise RuntimeError(
            "ANTHROPIC_API_KEY environment variable is not set. "
            "Get a key at https://console.anthropic.com/ and run:\n"
            "  export ANTHROPIC_API_KEY='your-key-here'"
        )
    return anthropic.AsyncAnthropic(api_key=api_key, base_url=provider_url or DEFAULT_PROVIDER_URL)


def strip_code_fences(text):
    """Remove a single surrounding ``` block (optionally language-tagged).

    Idempotent: an unfenced string only gets trimmed.
    """
    cleaned = (text or "").strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        return match.group(1).strip()
    return cleaned


def extract_json(text):
    """Parse a JSON object out of a model response.

    Falls back to the outermost {...} span when the response carries
    commentary around the object.
    """
    cleaned = strip_code_fences(text) or "{}"
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        first = cleaned.find("{")
        last = cleaned.rfind("}")
        if first < 0 or last <= first:
            raise InvalidStructuredOutput(f"Model did not return valid JSON: {e}") from e
        try:
            return json.loads(cleaned[first:last + 1])
        except json.JSONDecodeError as inner:
            raise InvalidStructuredOutput(f"Model did not return valid JSON: {inner}") from inner


def _split_messages(messages):
    """Split role-tagged messages into (system, conversation) for the Messages API."""
    system_parts = []
    conversation = []
    for message in messages:
        if message["role"] == "system":
            system_parts.append(message["content"])
        else:
            conversation.append({"role": message["role"], "content": message["content"]})
    system = "\n\n".join(system_parts)
    if not conversation:
        # The API needs at least one user turn
        conversation = [{"role": "user", "content": system}]
        system = ""
    return system, conversation


def _response_text(response):
    return "".join(
        block.text for block in response.content if getattr(block, "type", None) == "text"
    ).strip()


class ModelGateway:
    """Wraps the chat-completion capability with retries and output parsing.

    Two operations are exposed: complete_structured() for shape-conformant
    JSON and complete_text() for free text with optional multi-sampling.
    Failures are retried as a whole round trip; exhausting the bound raises
    LLMError chained to the last failure.
    """

    def __init__(self, client=None, provider_url=None, retries=None, timeout=None, retry_delay=None):
        self._client = client
        self.provider_url = provider_url
        self.retries = retries if retries is not None else DEFAULTS["llm_retries"]
        self.timeout = timeout if timeout is not None else DEFAULTS["llm_timeout"]
        self.retry_delay = retry_delay if retry_delay is not None else DEFAULTS["llm_retry_delay"]

    @property
    def client(self):
        if self._client is None:
            self._client = get_client(self.provider_url)
        return self._client

    async def _create(self, model, system, conversation, temperature, max_tokens):
        kwargs = {
            "model": model,
            "max_tokens": max_tokens or 4096,
            "messages": conversation,
        }
        if system:
            kwargs["system"] = system
        if temperature is not None:
            kwargs["temperature"] = temperature
        response = await asyncio.wait_for(self.client.messages.create(**kwargs), timeout=self.timeout)
        return _response_text(response)

    async def _with_retries(self, label, attempt_fn, retryable):
        last_error = None
        for attempt in range(1, self.retries + 1):
            try:
                return await attempt_fn()
            except retryable as e:
                last_error = e
                logger.warning("%s failed (attempt %d/%d): %s", label, attempt, self.retries, e)
                if attempt < self.retries and self.retry_delay:
                    await asyncio.sleep(self.retry_delay)
        raise LLMError(f"{label} failed after {self.retries} attempts: {last_error}") from last_error

    async def complete_structured(self, model, messages, shape, adhere_to_schema=True, check=None,
                                  temperature=None, max_tokens=None):
        """Return output matching `shape` (a pydantic model class).

        With adhere_to_schema=False the schema is advisory: the parsed dict
        is returned without validation. `check` receives the result (model
        instance or dict) and may raise InvalidStructuredOutput to reject
        it; that is retried like a parse failure.
        """
        system, conversation = _split_messages(messages)
        schema = json.dumps(shape.model_json_schema(by_alias=True), indent=2)
        if adhere_to_schema:
            guidance = f"{JSON_INSTRUCTION}\nThe JSON MUST conform to this JSON schema:\n{schema}"
        else:
            guidance = f"{JSON_INSTRUCTION}\nUse this JSON schema as a guide for the structure:\n{schema}"
        system = f"{system}\n\n{guidance}" if system else guidance

        async def attempt():
            text = await self._create(model, system, conversation, temperature, max_tokens)
            result = extract_json(text)
            if adhere_to_schema:
                try:
                    result = shape.model_validate(result)
                except ValidationError as e:
                    raise InvalidStructuredOutput(f"Model output did not match {shape.__name__}: {e}") from e
            if check is not None:
                check(result)
            return result

        return await self._with_retries(
            f"complete_structured[{shape.__name__}]",
            attempt,
            (anthropic.APIError, asyncio.TimeoutError, InvalidStructuredOutput),
        )

    async def complete_text(self, model, messages, n=1, temperature=None, max_tokens=None):
        """Return free text: a str when n == 1, else a list in request order."""
        if n < 1:
            raise ValueError(f"n must be >= 1, got {n}")
        system, conversation = _split_messages(messages)

        async def attempt():
            calls = [
                self._create(model, system, conversation, temperature, max_tokens)
                for _ in range(n)
            ]
            texts = await asyncio.gather(*calls)
            if n == 1:
                return texts[0]
            return list(texts)

        return await self._with_retries(
            "complete_text",
            attempt,
            (anthropic.APIError, asyncio.TimeoutError),
        )

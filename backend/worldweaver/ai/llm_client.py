import json
import logging
import re
from typing import Any, TypeVar

from openai import APIError, AsyncOpenAI
from pydantic import BaseModel, ValidationError

from worldweaver.ai.artifacts import TokenUsage
from worldweaver.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

JSON_ONLY_INSTRUCTIONS = (
    "CRITICAL: You must respond in ONLY valid JSON. "
    "Do not include markdown code blocks (```json) or any conversational text around the JSON."
)
RETRY_INSTRUCTIONS = (
    "RETRY INSTRUCTIONS: Your previous response was invalid or incomplete. "
    "Return ONLY a single JSON object. "
    "Do not add any prose, headings, markdown fences, or explanations."
)


def _extract_fenced_block(text: str) -> str | None:
    blocks = re.findall(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL | re.IGNORECASE)
    return blocks[0].strip() if blocks else None


def _strip_code_fences(text: str) -> str:
    if not text:
        return ""
    fenced = re.match(r"^\s*```[a-zA-Z0-9_-]*\s*([\s\S]*?)\s*```\s*$", text)
    if fenced:
        return fenced.group(1).strip()
    return text.strip()


def _extract_balanced_json_span(text: str) -> str | None:
    """Best-effort extraction of the first balanced top-level JSON object/array."""
    if not text:
        return None

    starts = []
    first_obj = text.find("{")
    first_arr = text.find("[")
    if first_obj != -1:
        starts.append((first_obj, "{", "}"))
    if first_arr != -1:
        starts.append((first_arr, "[", "]"))
    if not starts:
        return None

    start_idx, open_ch, close_ch = min(starts, key=lambda x: x[0])
    depth = 0
    in_string = False
    escape = False
    for i in range(start_idx, len(text)):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return text[start_idx:i + 1]
    return None


def structured_text_candidates(raw_text: str) -> list[str]:
    text = (raw_text or "").strip()
    if not text:
        return []

    candidates: list[str] = []
    fenced = _extract_fenced_block(text)
    if fenced:
        candidates.append(fenced)

    candidates.append(text)

    balanced = _extract_balanced_json_span(text)
    if balanced:
        candidates.append(balanced)

    # Remove leading "json" token some models emit before the object.
    if text.lower().startswith("json"):
        trimmed = text[4:].lstrip(": \n\r\t")
        if trimmed:
            candidates.append(trimmed)
            balanced_trimmed = _extract_balanced_json_span(trimmed)
            if balanced_trimmed:
                candidates.append(balanced_trimmed)

    # Deduplicate while preserving order.
    seen = set()
    unique: list[str] = []
    for candidate in candidates:
        c = candidate.strip()
        if not c or c in seen:
            continue
        seen.add(c)
        unique.append(c)
    return unique


def parse_json_object(raw_text: str) -> dict[str, Any]:
    """Parse the first JSON object found in a model reply."""
    candidates = structured_text_candidates(raw_text)
    if not candidates:
        raise ValueError("Model returned empty content for JSON response")
    errors: list[str] = []
    for candidate in candidates:
        try:
            parsed = json.loads(candidate, strict=False)
        except json.JSONDecodeError as e:
            errors.append(str(e))
            continue
        if isinstance(parsed, dict):
            return parsed
        errors.append(f"expected a JSON object, got {type(parsed).__name__}")
    raise ValueError("Unable to parse JSON response after candidate extraction: " + " | ".join(errors[:3]))


def _as_int(value: Any) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def usage_from_response(response: Any, model: str) -> TokenUsage:
    usage = getattr(response, "usage", None)
    prompt_tokens = _as_int(getattr(usage, "prompt_tokens", None) or getattr(usage, "input_tokens", None))
    completion_tokens = _as_int(
        getattr(usage, "completion_tokens", None) or getattr(usage, "output_tokens", None)
    )
    total_tokens = _as_int(getattr(usage, "total_tokens", None)) or prompt_tokens + completion_tokens
    return TokenUsage(
        model=model,
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=total_tokens,
    )


class LLMClient:
    """OpenAI-compatible client for JSON, text and image generation.

    After every call ``last_usage`` holds the token counts reported by the
    provider and the model that actually answered.
    """

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        fallback_model: str | None = None,
    ):
        self.model_name = model_name or settings.MODEL_DEFAULT
        self.fallback_model = fallback_model if fallback_model is not None else settings.MODEL_FALLBACK
        self.image_model = settings.IMAGE_MODEL
        self.last_usage = TokenUsage(model=self.model_name)

        resolved_api_key = api_key or settings.llm_api_key
        resolved_base_url = base_url or settings.LLM_BASE_URL

        self.client = AsyncOpenAI(
            base_url=resolved_base_url,
            api_key=resolved_api_key,
        )

    @staticmethod
    def _chat_completion_kwargs(model_name: str, *, temperature: float | None) -> dict:
        """Build provider/model-compatible kwargs for chat completions."""
        # GPT-5 family rejects non-default temperature values in some OpenAI endpoints.
        if (model_name or "").lower().startswith("gpt-5"):
            return {}
        if temperature is None:
            return {}
        return {"temperature": temperature}

    async def _complete(self, messages: list[dict[str, str]], *, temperature: float | None) -> tuple[Any, str]:
        """Run a chat completion, falling back to the secondary model on provider errors."""
        models = [self.model_name]
        if self.fallback_model and self.fallback_model != self.model_name:
            models.append(self.fallback_model)

        for idx, model in enumerate(models):
            try:
                response = await self.client.chat.completions.create(
                    model=model,
                    messages=messages,
                    **self._chat_completion_kwargs(model, temperature=temperature),
                )
                return response, model
            except APIError as e:
                if idx + 1 < len(models):
                    logger.warning("Model %s failed (%s). Falling back to %s.", model, e, models[idx + 1])
                    continue
                raise
        raise RuntimeError("Chat completion failed without a captured error")

    @staticmethod
    def _response_text(response: Any, model: str) -> str:
        if getattr(response, "choices", None) is None:
            logger.error("Received invalid response structure from %s: %s", model, response)
            raise ValueError(f"Provider {model} returned an invalid response.")
        if len(response.choices) == 0:
            logger.error("Received 0 choices from %s: %s", model, response)
            raise ValueError(f"Provider {model} returned no output. Try again or change model.")
        return response.choices[0].message.content or ""

    async def _generate_parsed(self, system_prompt: str, user_prompt: str, parse, *, temperature: float):
        attempt_prompts = [
            f"{system_prompt}\n\n{JSON_ONLY_INSTRUCTIONS}",
            f"{system_prompt}\n\n{JSON_ONLY_INSTRUCTIONS}\n\n{RETRY_INSTRUCTIONS}",
        ]
        for attempt_idx, system_prompt_attempt in enumerate(attempt_prompts, start=1):
            logger.info(
                "Issuing JSON request to model %s (attempt %s/%s)...",
                self.model_name,
                attempt_idx,
                len(attempt_prompts),
            )
            response, model = await self._complete(
                [
                    {"role": "system", "content": system_prompt_attempt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=0 if attempt_idx > 1 else temperature,
            )
            self.last_usage = usage_from_response(response, model)
            try:
                result = parse(self._response_text(response, model))
                logger.info("Successfully parsed JSON response from %s (attempt %s).", model, attempt_idx)
                return result
            except (ValidationError, ValueError) as e:
                if attempt_idx < len(attempt_prompts):
                    logger.warning(
                        "JSON parsing failed for %s on attempt %s/%s: %s. Retrying...",
                        model,
                        attempt_idx,
                        len(attempt_prompts),
                        e,
                    )
                    continue
                logger.error("Error parsing JSON response from %s: %s", model, e)
                raise
        raise RuntimeError("JSON generation failed without a captured error")

    async def generate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        response_schema: type[T],
        *,
        temperature: float = 0.7,
    ) -> T:
        """
        Generate a response matching the provided Pydantic schema.
        The schema is injected into the system prompt; JSON mode is enforced by prompt only.
        """
        schema_json = json.dumps(response_schema.model_json_schema())
        augmented_system_prompt = f"{system_prompt}\n\nEXPECTED SCHEMA:\n{schema_json}"

        def parse(text: str) -> T:
            return response_schema.model_validate(parse_json_object(text))

        return await self._generate_parsed(augmented_system_prompt, user_prompt, parse, temperature=temperature)

    async def generate_json(
        self, system_prompt: str, user_prompt: str, *, temperature: float = 0.8
    ) -> dict[str, Any]:
        """Generate a free-form JSON object (keys chosen by the prompt)."""
        return await self._generate_parsed(system_prompt, user_prompt, parse_json_object, temperature=temperature)

    async def generate_text(self, system_prompt: str, user_prompt: str, *, temperature: float = 0.7) -> str:
        """Generate plain prose; markdown fences wrapping the whole reply are removed."""
        prompts = [
            system_prompt,
            f"{system_prompt}\n\nRETRY INSTRUCTIONS: Return only the requested text with no markdown fences.",
        ]
        for attempt_idx, system_prompt_attempt in enumerate(prompts, start=1):
            logger.info(
                "Issuing text request to model %s (attempt %s/%s)...",
                self.model_name,
                attempt_idx,
                len(prompts),
            )
            response, model = await self._complete(
                [
                    {"role": "system", "content": system_prompt_attempt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=0 if attempt_idx > 1 else temperature,
            )
            self.last_usage = usage_from_response(response, model)
            text_response = _strip_code_fences(self._response_text(response, model).strip())
            if text_response:
                return text_response
            if attempt_idx < len(prompts):
                logger.warning("Model %s returned empty text on attempt %s. Retrying...", model, attempt_idx)
        logger.error("Model %s returned empty content", self.model_name)
        raise ValueError("Model returned empty content")

    async def generate_image(
        self, prompt: str, *, size: str = "1024x1024", quality: str | None = None
    ) -> str:
        """Generate one image and return it as base64-encoded PNG data."""
        quality = quality or settings.IMAGE_QUALITY
        logger.info("Issuing image request to model %s (%s, %s)...", self.image_model, size, quality)
        response = await self.client.images.generate(
            model=self.image_model,
            prompt=prompt,
            n=1,
            size=size,
            quality=quality,
        )
        data = getattr(response, "data", None) or []
        b64_image = getattr(data[0], "b64_json", None) if data else None
        if not isinstance(b64_image, str) or not b64_image:
            logger.error("Image model %s returned no image data", self.image_model)
            raise ValueError("No image data in response")
        self.last_usage = usage_from_response(response, self.image_model)
        return b64_image

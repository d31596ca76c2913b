import logging
from dataclasses import dataclass
from typing import Any, List, Mapping

from providers import CompletionProvider
from translation_prompts import (
    DEFAULT_DIFFICULTY,
    DIFFICULTY_ALIASES,
    DIFFICULTY_INSTRUCTIONS,
    SOURCE_LANGUAGE,
    SYSTEM_PROMPT_TEMPLATE,
    TARGET_LANGUAGE,
    USER_PROMPT_TEMPLATE,
)


logger = logging.getLogger(__name__)


class ValidationError(Exception):
    pass


class MissingFieldError(ValidationError):
    def __init__(self, fields: List[str]) -> None:
        self.fields = list(fields)
        names = " e ".join(f'"{field}"' for field in self.fields)
        if len(self.fields) > 1:
            message = f"Parâmetros {names} são obrigatórios."
        else:
            message = f"Parâmetro {names} é obrigatório."
        super().__init__(message)


class TextTooLongError(ValidationError):
    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(f"Texto muito longo ({length} caracteres, máximo {limit}).")


@dataclass(frozen=True)
class TranslationRequest:
    text: str
    difficulty: str


@dataclass(frozen=True)
class PromptPair:
    system_prompt: str
    user_prompt: str


def parse_request(payload: Mapping[str, Any], max_text_length: int) -> TranslationRequest:
    text = payload.get("text")
    difficulty = payload.get("difficulty")

    missing = []
    if not isinstance(text, str) or not text.strip():
        missing.append("text")
    if not isinstance(difficulty, str) or not difficulty:
        missing.append("difficulty")
    if missing:
        raise MissingFieldError(missing)

    if len(text) > max_text_length:
        raise TextTooLongError(len(text), max_text_length)

    return TranslationRequest(text=text, difficulty=difficulty)


def resolve_instruction(difficulty: str) -> str:
    # Exact, case-sensitive match; unknown keys get the medium instruction.
    key = DIFFICULTY_ALIASES.get(difficulty, difficulty)
    instruction = DIFFICULTY_INSTRUCTIONS.get(key)
    if instruction is None:
        logger.info("difficulty=%r unknown, fallback=%s", difficulty, DEFAULT_DIFFICULTY)
        return DIFFICULTY_INSTRUCTIONS[DEFAULT_DIFFICULTY]
    return instruction


def build_prompts(request: TranslationRequest) -> PromptPair:
    system_prompt = SYSTEM_PROMPT_TEMPLATE.format(
        source=SOURCE_LANGUAGE,
        target=TARGET_LANGUAGE,
        instruction=resolve_instruction(request.difficulty),
    )
    user_prompt = USER_PROMPT_TEMPLATE.format(text=request.text)
    return PromptPair(system_prompt=system_prompt, user_prompt=user_prompt)


def translate_core(
    payload: Mapping[str, Any], provider: CompletionProvider, max_text_length: int
) -> str:
    request = parse_request(payload, max_text_length)
    prompts = build_prompts(request)
    logger.info(
        "provider_used=%s difficulty=%s chars=%d",
        provider.name,
        request.difficulty,
        len(request.text),
    )
    return provider.complete(prompts.system_prompt, prompts.user_prompt)

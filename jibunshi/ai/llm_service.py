"""
llm_service.py — Mistral async generation layer for Jibunshi.

Components:
  build_questions_prompt() — interview question prompt for one life stage
  PHOTO_ANALYSIS_PROMPT    — vision prompt returning a fixed JSON shape
  message_text()           — coerce a chat completion to plain text
  extract_json_object()    — first {...} block of a reply, parsed
  generate_questions()     — 5 warm questions for a stage (structured, strict)
  analyze_photo()          — scene / era / stage analysis of an image (structured, strict)
  correct_text()           — merge + polish interview fragments (free text, best-effort)

The client is created once in main.py lifespan (None when MISTRAL_API_KEY is
empty) and passed in as a parameter. A missing client fails the request with
AIServiceError, never the process.

No HTTPException anywhere — this is pure business logic, HTTP layer is routes.py.
"""
import base64
import json
import logging
import re
from typing import Any, Optional

from mistralai import Mistral

from jibunshi.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Mistral API constants
# ---------------------------------------------------------------------------

QUESTIONS_TEMPERATURE = 0.7   # Variety between stages matters more than determinism
QUESTIONS_MAX_TOKENS = 1024
PHOTO_TEMPERATURE = 0.2
PHOTO_MAX_TOKENS = 1024
CORRECTION_TEMPERATURE = 0.3
CORRECTION_MAX_TOKENS = 2048

QUESTION_COUNT = 5

LIFE_STAGES = ("birth", "childhood", "school", "work", "memory", "retirement")

JSON_BLOCK_REGEX = re.compile(r"\{[\s\S]*\}")


class AIServiceError(Exception):
    """The language model is not configured or returned an unusable reply."""


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def build_questions_prompt(
    stage: str,
    user_name: Optional[str] = None,
    age: Optional[int] = None,
    photo_description: Optional[str] = None,
) -> str:
    photo_line = f"\n- 写真の説明: {photo_description}" if photo_description else ""
    return f"""高齢者のための人生回想インタビューで、次のステージについて質問を生成してください。

ユーザー情報：
- 名前: {user_name or '不明'}
- 年齢: {age if age is not None else '不明'}
- 現在のステージ: {stage}{photo_line}

要件：
- 温かみのある質問を{QUESTION_COUNT}個生成
- 思い出を引き出す質問
- 感覚（匂い、音、季節感）に関する質問
- 家族や周辺の人についての質問
- 高齢者が答えやすい言葉遣い

以下のJSON形式だけを返してください：
{{
  "stage": "{stage}",
  "questions": ["質問1", "質問2", "質問3", "質問4", "質問5"]
}}"""


PHOTO_ANALYSIS_PROMPT = """この写真を詳細に分析してください。以下の情報をJSON形式だけで返してください：
{
  "scene_description": "写真の場面の詳細な説明",
  "estimated_era": "推定される時代・年代",
  "suggested_stage": "birth, childhood, school, work, memory, retirement のいずれか",
  "emotional_context": "写真が表現する感情や雰囲気",
  "suggested_questions": ["質問1", "質問2", "質問3"]
}"""

PHOTO_ANALYSIS_KEYS = (
    "scene_description",
    "estimated_era",
    "suggested_stage",
    "emotional_context",
    "suggested_questions",
)


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------

def require_client(client: Optional[Mistral]) -> Mistral:
    if client is None:
        raise AIServiceError("MISTRAL_API_KEY is not set; AI features are unavailable")
    return client


def message_text(response: Any) -> str:
    """
    Best-effort coercion of a chat completion to text.
    content may be a str, a list of chunks (objects or dicts with .text), or None.
    """
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return ""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for chunk in content:
            text = chunk.get("text") if isinstance(chunk, dict) else getattr(chunk, "text", None)
            if text:
                parts.append(str(text))
        return "".join(parts)
    return str(content)


def extract_json_object(text: str) -> dict:
    """Parse the outermost {...} block of a reply. Raises AIServiceError when absent or invalid."""
    match = JSON_BLOCK_REGEX.search(text)
    if match is None:
        raise AIServiceError("Model reply did not contain a JSON object")
    try:
        value = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise AIServiceError(f"Model reply JSON could not be parsed: {exc}") from exc
    if not isinstance(value, dict):
        raise AIServiceError("Model reply JSON is not an object")
    return value


# ---------------------------------------------------------------------------
# Generation functions
# ---------------------------------------------------------------------------

async def generate_questions(
    client: Optional[Mistral],
    stage: str,
    user_name: Optional[str] = None,
    age: Optional[int] = None,
    photo_description: Optional[str] = None,
    model: Optional[str] = None,
) -> dict:
    """Returns {"stage": stage, "questions": [str, ...]} with at most QUESTION_COUNT items."""
    client = require_client(client)
    model = model or settings.mistral_model
    prompt = build_questions_prompt(stage, user_name, age, photo_description)

    logger.info("Calling Mistral API model=%s task=questions stage=%s", model, stage)
    response = await client.chat.complete_async(
        model=model,
        messages=[{"role": "user", "content": prompt}],
        temperature=QUESTIONS_TEMPERATURE,
        max_tokens=QUESTIONS_MAX_TOKENS,
    )

    parsed = extract_json_object(message_text(response))
    questions = parsed.get("questions")
    if not isinstance(questions, list) or not questions:
        raise AIServiceError("Model reply has no questions list")
    questions = [str(q).strip() for q in questions if str(q).strip()][:QUESTION_COUNT]
    if not questions:
        raise AIServiceError("Model reply has no usable questions")
    logger.info("Questions generated stage=%s count=%d", stage, len(questions))
    return {"stage": stage, "questions": questions}


async def analyze_photo(
    client: Optional[Mistral],
    image_bytes: bytes,
    mime_type: str,
    model: Optional[str] = None,
) -> dict:
    """Vision analysis of one image. Missing keys are filled with empty values."""
    client = require_client(client)
    model = model or settings.mistral_vision_model
    data_url = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"

    logger.info("Calling Mistral API model=%s task=photo bytes=%d", model, len(image_bytes))
    response = await client.chat.complete_async(
        model=model,
        messages=[
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": data_url},
                    {"type": "text", "text": PHOTO_ANALYSIS_PROMPT},
                ],
            }
        ],
        temperature=PHOTO_TEMPERATURE,
        max_tokens=PHOTO_MAX_TOKENS,
    )

    parsed = extract_json_object(message_text(response))
    analysis = {key: parsed.get(key, "") for key in PHOTO_ANALYSIS_KEYS}
    if not isinstance(analysis["suggested_questions"], list):
        analysis["suggested_questions"] = []
    return analysis


async def correct_text(
    client: Optional[Mistral],
    prompt: str,
    model: Optional[str] = None,
) -> str:
    """
    Free-text correction. The reply is passed through as-is after text
    coercion; an empty reply is returned as "" rather than rejected.
    """
    client = require_client(client)
    model = model or settings.mistral_model

    logger.info("Calling Mistral API model=%s task=correction prompt_len=%d", model, len(prompt))
    response = await client.chat.complete_async(
        model=model,
        messages=[{"role": "user", "content": prompt}],
        temperature=CORRECTION_TEMPERATURE,
        max_tokens=CORRECTION_MAX_TOKENS,
    )
    text = message_text(response).strip()
    logger.info("Mistral correction received len=%d", len(text))
    return text

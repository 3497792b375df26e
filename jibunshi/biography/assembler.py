"""
assembler.py — turns finalized interview answers into the biography and an
auto-generated timeline entry.

Flow of assemble_biography():
  1. build_correction_prompt()   fragments in original order → fixed template
  2. llm_service.correct_text()  external correction (best-effort text)
  3. upsert Biography            edited_content = ai_summary = corrected text
  4. append Timeline entry       is_auto_generated=True, stage label, event info
  5. collect_photo_refs()        answers_with_photos[*].photos in order
  6. replace photo links         on the new entry and on the biography

Everything runs inside the caller's AsyncSession; get_db() commits once.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from mistralai import Mistral
from sqlalchemy.ext.asyncio import AsyncSession

from jibunshi import store
from jibunshi.ai import llm_service
from jibunshi.store import PhotoRef

logger = logging.getLogger(__name__)

FRAGMENT_SEPARATOR = "\n\n"

CORRECTION_TEMPLATE = """以下は高齢者の人生回想の断片です（ステージ: {stage}）。
これらを統合して、一つのまとまった文章にしてください。

要件：
- 時系列順に整理
- 重複を削除
- 読みやすく、流れが良い文章に
- 原文の感情や思い出は保持
- 段落は3～4行ごと
- 敬語から適切な文体に調整

---
{fragments}
---

統合版をそのまま返してください（マークダウンなし、JSON形式なし）。"""

# Keys a photo reference object may carry its path under
PHOTO_PATH_KEYS = ("file_path", "filePath", "path", "url")


def render_fragments(fragments: Sequence[str]) -> str:
    return FRAGMENT_SEPARATOR.join(
        f"【回答{i}】\n{text}" for i, text in enumerate(fragments, start=1)
    )


def build_correction_prompt(fragments: Sequence[str], stage: str) -> str:
    """Deterministic: the same fragments and stage always give the same prompt."""
    return CORRECTION_TEMPLATE.format(stage=stage, fragments=render_fragments(fragments))


def collect_photo_refs(answers_with_photos: Optional[Sequence[Any]]) -> list[PhotoRef]:
    """
    Flatten answers_with_photos[*].photos into PhotoRefs, preserving order.
    A photo may be a bare path string or an object with a path field;
    anything else is skipped.
    """
    refs: list[PhotoRef] = []
    for answer in answers_with_photos or []:
        if not isinstance(answer, dict):
            continue
        for photo in answer.get("photos") or []:
            if isinstance(photo, str) and photo:
                refs.append(PhotoRef(file_path=photo))
            elif isinstance(photo, dict):
                path = next((photo[k] for k in PHOTO_PATH_KEYS if isinstance(photo.get(k), str) and photo[k]), None)
                if path is None:
                    continue
                photo_id = photo.get("id")
                refs.append(
                    PhotoRef(
                        file_path=path,
                        description=photo.get("description"),
                        photo_id=photo_id if isinstance(photo_id, int) else None,
                    )
                )
    return refs


@dataclass
class AssemblyResult:
    timeline_id: int
    biography_id: int
    edited_content: str
    photo_count: int


async def assemble_biography(
    db: AsyncSession,
    llm: Optional[Mistral],
    user_id: int,
    fragments: Sequence[str],
    stage: str,
    answers_with_photos: Optional[Sequence[Any]] = None,
    event_title: Optional[str] = None,
    event_year: Optional[int] = None,
    event_month: Optional[int] = None,
) -> AssemblyResult:
    if not fragments:
        raise ValueError("responses must contain at least one answer")

    prompt = build_correction_prompt(fragments, stage)
    edited = await llm_service.correct_text(llm, prompt)

    biography, _ = await store.upsert_biography(db, user_id, edited, ai_summary=edited)

    user = await store.get_user(db, user_id)
    age = None
    if event_year is not None and user is not None and user.birth_year is not None:
        age = event_year - user.birth_year

    entry = await store.create_timeline_entry(
        db,
        user_id,
        stage=stage,
        age=age,
        year=event_year,
        month=event_month,
        event_title=event_title or f"{stage}ステージの自動修正",
        event_description="AIによる自動修正版",
        edited_content=edited,
        ai_corrected_text=edited,
        is_auto_generated=True,
    )

    refs = collect_photo_refs(answers_with_photos)
    # Only photos the user owns may carry a photo_id link
    for ref in refs:
        if ref.photo_id is not None:
            photo = await store.get_photo(db, ref.photo_id)
            if photo is None or photo.user_id != user_id:
                ref.photo_id = None
    await store.replace_timeline_photos(db, entry.id, refs)
    await store.replace_biography_photos(db, biography.id, refs)

    logger.info(
        "Biography assembled user_id=%s timeline_id=%s fragments=%d photos=%d",
        user_id,
        entry.id,
        len(fragments),
        len(refs),
    )
    return AssemblyResult(
        timeline_id=entry.id,
        biography_id=biography.id,
        edited_content=edited,
        photo_count=len(refs),
    )

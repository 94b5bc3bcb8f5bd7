from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..config import settings
from ..dates import now_ms
from ..flows import CardFlow, EmbeddingUnavailableError
from ..models.card import (
    CardCreateRequest,
    CardResponse,
    CardUpdateRequest,
    SimilarCardItem,
    SimilarSearchRequest,
)
from ..permissions import get_user_id
from ..srs.similar import SimilarCard
from ..store import store

router = APIRouter(tags=["cards"])


def _to_similar_items(ranked: list[SimilarCard]) -> list[SimilarCardItem]:
    return [
        SimilarCardItem(
            id=item.row.id,
            question=item.row.question,
            answer=item.row.answer,
            category=item.row.category,
            difficulty=item.row.difficulty,
            similarity_score=item.similarity,
        )
        for item in ranked
    ]


@router.post("", response_model=CardResponse, status_code=201, summary="カードを作成")
def create_card(req: CardCreateRequest, user_id: str = Depends(get_user_id)) -> CardResponse:
    """Create a card and its initial scheduling state.

    埋め込みは question と answer を改行で連結したテキストから生成する。
    生成できなくてもカードは作成される。
    """
    card = CardFlow(store).create(
        user_id,
        question=req.question,
        answer=req.answer,
        category=req.category,
        difficulty=req.difficulty,
        now=now_ms(),
    )
    return CardResponse.from_row(card)


@router.get("", response_model=list[CardResponse], summary="カード一覧")
def list_cards(
    category: Optional[str] = Query(default=None, max_length=100),
    user_id: str = Depends(get_user_id),
) -> list[CardResponse]:
    return [CardResponse.from_row(row) for row in store.list_cards(user_id, category=category)]


@router.post(
    "/similar",
    response_model=list[SimilarCardItem],
    summary="テキストから類似カードを検索",
)
def find_similar_by_text(req: SimilarSearchRequest, user_id: str = Depends(get_user_id)) -> list[SimilarCardItem]:
    """Rank the user's cards against free text (e.g. a card being drafted).

    埋め込みプロバイダが未設定の場合は空配列を返す。
    """
    try:
        ranked = CardFlow(store).similar_to_text(
            user_id, question=req.question, answer=req.answer, limit=req.limit
        )
    except EmbeddingUnavailableError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return _to_similar_items(ranked)


@router.get("/{card_id}", response_model=CardResponse, summary="カード取得")
def get_card(card_id: int, user_id: str = Depends(get_user_id)) -> CardResponse:
    card = store.get_card(user_id, card_id)
    if card is None:
        raise HTTPException(status_code=404, detail="Card not found")
    return CardResponse.from_row(card)


@router.patch("/{card_id}", response_model=CardResponse, summary="カード更新")
def update_card(card_id: int, req: CardUpdateRequest, user_id: str = Depends(get_user_id)) -> CardResponse:
    card = CardFlow(store).update(
        user_id,
        card_id,
        now=now_ms(),
        changes=req.model_dump(exclude_unset=True),
    )
    if card is None:
        raise HTTPException(status_code=404, detail="Card not found")
    return CardResponse.from_row(card)


@router.delete("/{card_id}", summary="カード削除")
def delete_card(card_id: int, user_id: str = Depends(get_user_id)) -> dict[str, bool]:
    if not store.delete_card(user_id, card_id):
        raise HTTPException(status_code=404, detail="Card not found")
    return {"ok": True}


@router.get(
    "/{card_id}/similar",
    response_model=list[SimilarCardItem],
    summary="類似カード検索（同カテゴリ）",
)
def find_similar_cards(
    card_id: int,
    limit: Optional[int] = Query(default=None, ge=1),
    user_id: str = Depends(get_user_id),
) -> list[SimilarCardItem]:
    """Return cards in the same category ordered by cosine similarity (desc)."""
    effective_limit = min(limit or settings.similar_default_limit, settings.similar_max_limit)
    flow = CardFlow(store)
    if store.get_card(user_id, card_id) is None:
        raise HTTPException(status_code=404, detail="Card not found")
    ranked = flow.similar_to_card(user_id, card_id, effective_limit)
    if ranked is None:
        raise HTTPException(status_code=404, detail="Card embedding not found")
    return _to_similar_items(ranked)

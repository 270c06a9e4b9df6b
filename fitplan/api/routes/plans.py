from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from fitplan.api.dependencies import get_session, plan_kind
from fitplan.domain.Plan import plan_class
from fitplan.logic.session import PlanSession
from fitplan.utilities.validators import PlanInput

router = APIRouter(prefix="/api/plans")


# === Collection ===
@router.get("/{kind}")
async def list_plans(kind: str = Depends(plan_kind), session: PlanSession = Depends(get_session)):
    store = session.store(kind)
    ledger = session.ledger(kind)
    return {
        "plans": [dict(plan.to_dict(), favorite=ledger.is_favorite(plan.id)) for plan in store.list()],
        "loading": store.loading,
    }


@router.post("/{kind}")
async def add_plan(body: PlanInput, kind: str = Depends(plan_kind), session: PlanSession = Depends(get_session)):
    cls = plan_class(kind)
    # variant fields of the other kind are rejected here
    attrs = cls.normalize_fields(body.model_dump(exclude_none=True))
    plan = await session.store(kind).add(cls(**attrs))
    return {"status": "success", "plan": plan.to_dict()}


@router.post("/{kind}/reload")
async def reload_plans(kind: str = Depends(plan_kind), session: PlanSession = Depends(get_session)):
    store = session.store(kind)
    await store.load()
    return {"status": "success", "count": len(store.list())}


@router.get("/{kind}/categories")
async def list_categories(kind: str = Depends(plan_kind), session: PlanSession = Depends(get_session)):
    return {"categories": [c.to_dict() for c in session.store(kind).categories()]}


@router.get("/{kind}/favorites")
async def list_favorites(kind: str = Depends(plan_kind), session: PlanSession = Depends(get_session)):
    return {
        "plans": [plan.to_dict() for plan in session.favorite_plans(kind)],
        "ids": session.ledger(kind).ids(),
    }


# === Single plan ===
@router.get("/{kind}/{plan_id}")
async def get_plan(plan_id: str, kind: str = Depends(plan_kind), session: PlanSession = Depends(get_session)):
    plan = session.store(kind).get_by_id(plan_id)
    if plan is None:
        return JSONResponse(status_code=404, content={"error": f"Plan {plan_id} not found", "kind": "not_found"})
    return dict(plan.to_dict(), favorite=session.ledger(kind).is_favorite(plan_id))


@router.patch("/{kind}/{plan_id}")
async def update_plan(plan_id: str, fields: Dict[str, Any] = Body(...), kind: str = Depends(plan_kind),
                      session: PlanSession = Depends(get_session)):
    plan = await session.store(kind).update(plan_id, fields)
    return {"status": "success", "plan": plan.to_dict()}


@router.delete("/{kind}/{plan_id}")
async def delete_plan(plan_id: str, kind: str = Depends(plan_kind), session: PlanSession = Depends(get_session)):
    await session.store(kind).delete(plan_id)
    return {"status": "success"}


@router.post("/{kind}/{plan_id}/favorite")
async def toggle_favorite(plan_id: str, kind: str = Depends(plan_kind), session: PlanSession = Depends(get_session)):
    favorite = await session.toggle_favorite(kind, plan_id)
    return {"planId": plan_id, "favorite": favorite}

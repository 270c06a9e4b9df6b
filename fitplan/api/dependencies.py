"""FastAPI dependencies shared by the routers."""
from fastapi import HTTPException, Request

from fitplan.logic.session import PlanSession
from fitplan.utilities.constants import WORKOUT, DIET

# URL segment -> plan kind
KIND_ALIASES = {
    "workout": WORKOUT, "workouts": WORKOUT,
    "diet": DIET, "diets": DIET, "diet-plans": DIET,
}


def get_session(request: Request) -> PlanSession:
    return request.app.state.session


def plan_kind(kind: str) -> str:
    try:
        return KIND_ALIASES[kind.lower()]
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown plan kind: {kind}") from None

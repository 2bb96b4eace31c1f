# alea/routes/activity.py
from typing import Optional

from fastapi import APIRouter, Depends

from ..activity import count_activity, get_activity_logs
from ..credits import check_and_reset_credits
from ..services import Services, get_services
from .auth import AuthUser, current_user

router = APIRouter(tags=["Activity"])


@router.get("/activity")
def list_activity(
    start_after: Optional[str] = None,
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    logs, last_visible = get_activity_logs(services.store, user.user_id, start_after=start_after)
    return {"logs": logs, "last_visible": last_visible}


@router.get("/activity/count")
def activity_count(
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    # Counts only the caller's own entries
    return {"count": count_activity(services.store, user.user_id)}


@router.get("/credits")
def get_credits(
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    return {"credits": check_and_reset_credits(services.store, user.user_id, services.settings.daily_credits)}

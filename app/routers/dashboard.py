from fastapi import APIRouter, Depends

from app.core.deps import get_current_user, get_dashboard
from app.models.ledger import DashboardSummary
from app.models.user import UserInDB
from app.services.dashboard import DashboardAggregator

router = APIRouter()


@router.get("", response_model=DashboardSummary, response_model_exclude_none=True)
async def get_dashboard_data(
    user: UserInDB = Depends(get_current_user),
    dashboard: DashboardAggregator = Depends(get_dashboard),
):
    """Totals, balance, the 60/30 day windows and the latest transactions."""
    return await dashboard.get_summary(user.user_id)

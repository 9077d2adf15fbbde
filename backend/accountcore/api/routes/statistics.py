from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from accountcore.api.deps import get_db
from accountcore.schemas.common import ErrorResponse
from accountcore.schemas.statistics import KpiSummaryOut, PredictionsOut, StatisticsOut
from accountcore.services.statistics import get_kpis, get_predictions, get_statistics


router = APIRouter(prefix="/statistics", tags=["statistics"], responses={400: {"model": ErrorResponse}})


@router.get("/predictions", response_model=PredictionsOut)
def predictions(
    base_date: str,
    months: int | None = None,
    db: Session = Depends(get_db),
):
    return get_predictions(db, base_date=base_date, months=months)


@router.get("/kpis", response_model=KpiSummaryOut)
def kpis(
    start_date: str,
    end_date: str,
    db: Session = Depends(get_db),
):
    return get_kpis(db, start_date=start_date, end_date=end_date)


@router.get("", response_model=StatisticsOut)
def statistics(
    start_date: str,
    end_date: str,
    db: Session = Depends(get_db),
):
    return get_statistics(db, start_date=start_date, end_date=end_date)

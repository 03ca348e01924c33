from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from buspos.db.session import get_db
from buspos.api.deps import require_roles
from buspos.models.user import User
from buspos.services import analytics_service, report_service
from buspos.services.audit_service import audit_trail

router = APIRouter(tags=["admin"])


@router.get("/admin/stats")
def stats(db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    return report_service.dashboard_stats(db)


@router.get("/admin/trips")
def trips(db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    return report_service.trip_metrics(db)


@router.get("/admin/analytics")
def analytics(db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    return analytics_service.sales_analytics(db)


@router.get("/admin/audit/{entity_type}/{entity_id}")
def audit(entity_type: str, entity_id: str, db: Session = Depends(get_db),
          me: User = Depends(require_roles("ADMIN"))):
    return audit_trail(db, entity_type, entity_id)


@router.get("/reports/sales")
def sales(period: str = "week", db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    return report_service.sales_report(db, period)

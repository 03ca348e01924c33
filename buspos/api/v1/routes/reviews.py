from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from buspos.db.session import get_db
from buspos.schemas.review import ReviewIn
from buspos.services import review_service

router = APIRouter(tags=["reviews"])


@router.get("/reviews")
def list_reviews(db: Session = Depends(get_db)):
    return review_service.list_reviews(db)


@router.post("/reviews", status_code=201)
def create_review(body: ReviewIn, db: Session = Depends(get_db)):
    r = review_service.create_review(db, body.ticketId, body.rating, body.review)
    return {
        "id": r.id,
        "ticketId": r.ticket_id,
        "rating": r.rating,
        "review": r.review,
        "createdAt": r.created_at.isoformat(),
    }

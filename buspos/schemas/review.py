from pydantic import BaseModel, Field
from typing import Optional

class ReviewIn(BaseModel):
    ticketId: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    review: Optional[str] = None

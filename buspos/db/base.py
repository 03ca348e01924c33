# Import all models so Base.metadata is complete for Alembic and create_all.
from buspos.db.session import Base  # noqa: F401
from buspos.models.user import User  # noqa: F401
from buspos.models.vendor import Vendor  # noqa: F401
from buspos.models.route import Route  # noqa: F401
from buspos.models.bus import Bus  # noqa: F401
from buspos.models.machine import Machine  # noqa: F401
from buspos.models.trip import Trip  # noqa: F401
from buspos.models.ticket import Ticket  # noqa: F401
from buspos.models.seat import Seat  # noqa: F401
from buspos.models.transaction import Transaction  # noqa: F401
from buspos.models.review import Review  # noqa: F401
from buspos.models.audit_log import AuditLog  # noqa: F401

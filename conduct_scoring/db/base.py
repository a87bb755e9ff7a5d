# conduct_scoring/db/base.py
# Import every model so Base.metadata knows all tables before create_all
from conduct_scoring.db.base_class import Base  # noqa
from conduct_scoring.models.user import User  # noqa
from conduct_scoring.models.scoring_record import ScoringRecordRow  # noqa
from conduct_scoring.models.notification import Notification  # noqa

from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .service import Service
from .slot import Slot
from .booking import Booking
from .payment import Payment
from .review import Review
from .loyalty import LoyaltyReward, LoyaltyTransaction
from .staff import Staff, StaffLeave
from .inventory import InventoryCategory, InventoryItem, InventoryTransaction
from .password_reset import PasswordResetToken

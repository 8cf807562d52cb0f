"""
Table models. Importing this package registers every table and its
storage-boundary hooks with SQLModel's metadata.
"""
from .user import Identity, Role, UserRoleAssignment
from .auth_session import AuthSession
from .driver import Driver, DriverStatus
from .bin import Bin, BinCapacity, BinStatus
from .complaints import Complaint, ComplaintStatus
from .audit_log import AuditLog, AuditAction

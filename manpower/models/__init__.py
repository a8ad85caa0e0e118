"""
ManPower SQLAlchemy Models
=============================

Central import point for all ORM models. Import ``Base`` from here for
Alembic auto-generation and for the ``create_all`` convenience in tests.

Usage::

    from manpower.models import Base, User, Job, Proposal
"""

# -- Base & Mixins --
from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin

# -- Users & sessions --
from .user import AuthSession, User, UserRole

# -- Jobs --
from .job import Job, JobStatus

# -- Proposals --
from .proposal import Proposal, ProposalStatus

# -- Contracts --
from .contract import Contract, ContractStatus

# -- Messages --
from .chat import ConversationKey, ConversationKind, Message

# -- File uploads --
from .file_upload import FileUpload, UploadType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    # Users
    "User",
    "UserRole",
    "AuthSession",
    # Jobs
    "Job",
    "JobStatus",
    # Proposals
    "Proposal",
    "ProposalStatus",
    # Contracts
    "Contract",
    "ContractStatus",
    # Messages
    "Message",
    "ConversationKind",
    "ConversationKey",
    # Files
    "FileUpload",
    "UploadType",
]

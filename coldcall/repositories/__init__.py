# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Repository package. Re-exports the data-access classes."""
from coldcall.repositories.class_repository import ClassRepository
from coldcall.repositories.cold_call_repository import ColdCallRepository
from coldcall.repositories.student_repository import StudentRepository
from coldcall.repositories.user_repository import UserRepository

__all__ = ["ClassRepository", "ColdCallRepository", "StudentRepository", "UserRepository"]

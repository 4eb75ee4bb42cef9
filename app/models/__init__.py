from app.models.user import User, Role
from app.models.patient import Patient, Gender
from app.models.appointment import Appointment, AppointmentStatus
from app.models.medical_record import MedicalRecord
from app.models.password_reset_token import PasswordResetToken
from app.models.audit_log import AuditLog

__all__ = ["User", "Role", "Patient", "Gender", "Appointment", "AppointmentStatus",
           "MedicalRecord", "PasswordResetToken", "AuditLog"]

from .config import get_firestore_client, initialize_firebase, FIREBASE_CONFIG
from .models import Course, CourseType, Decision, DenialReason, StudentAcademicContext
from .periods import (
    AcademicCalendar,
    RegistrationPeriod,
    compare_periods,
    get_academic_calendar,
    resolve_registration_period,
)
from .auth import (
    AuthenticatedUser,
    UserRole,
    get_current_user,
    get_current_admin,
    verify_user_access,
    validate_email_domain,
    ALLOWED_EMAIL_DOMAIN
)

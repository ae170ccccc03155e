from .catalog import CourseCatalog, CourseNotFoundError, FirebaseCatalogService, get_course_catalog
from .eligibility import EligibilityEvaluator, get_eligibility_evaluator
from .registration import RegistrationService, RegistrationPersistenceError, get_registration_service
from .registration_store import (
    RegistrationStore,
    RegistrationStoreError,
    InMemoryRegistrationStore,
    FirestoreRegistrationStore,
    RedisRegistrationStore,
    get_registration_store,
)
from .student import StudentService, get_student_service

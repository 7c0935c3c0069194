from .applications import ApplicationLifecycle
from .enquiries import EnquiryThread
from .projects import ProjectAdministration, ProjectFilter, ProjectSortOrder
from .registrations import RegistrationLifecycle

__all__ = [
    "ApplicationLifecycle",
    "EnquiryThread",
    "ProjectAdministration",
    "ProjectFilter",
    "ProjectSortOrder",
    "RegistrationLifecycle",
]

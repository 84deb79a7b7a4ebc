"""Use case layer for the portal.

Re-export common use cases for convenient imports in tests.
"""

from .applications import (
    ApplicationSummaryUseCase,
    DecideApplicationInput,
    DecideApplicationUseCase,
    DecisionOutcome,
    GetApplicationInput,
    GetApplicationUseCase,
    ListApplicationsInput,
    ListApplicationsUseCase,
    SubmitApplicationInput,
    SubmitApplicationUseCase,
)
from .identity import (
    GetMeInput,
    GetMeUseCase,
    SignInInput,
    SignInUseCase,
    SignUpInput,
    SignUpUseCase,
    UpdateMeInput,
    UpdateMeUseCase,
)
from .internships import (
    CreateInternshipInput,
    CreateInternshipUseCase,
    DeleteInternshipInput,
    DeleteInternshipUseCase,
    ListInternshipsInput,
    ListInternshipsUseCase,
    UpdateInternshipInput,
    UpdateInternshipUseCase,
)

__all__ = [
    "ApplicationSummaryUseCase",
    "CreateInternshipInput",
    "CreateInternshipUseCase",
    "DecideApplicationInput",
    "DecideApplicationUseCase",
    "DecisionOutcome",
    "DeleteInternshipInput",
    "DeleteInternshipUseCase",
    "GetApplicationInput",
    "GetApplicationUseCase",
    "GetMeInput",
    "GetMeUseCase",
    "ListApplicationsInput",
    "ListApplicationsUseCase",
    "ListInternshipsInput",
    "ListInternshipsUseCase",
    "SignInInput",
    "SignInUseCase",
    "SignUpInput",
    "SignUpUseCase",
    "SubmitApplicationInput",
    "SubmitApplicationUseCase",
    "UpdateInternshipInput",
    "UpdateInternshipUseCase",
    "UpdateMeInput",
    "UpdateMeUseCase",
]

from .serializer import (  # noqa: F401
    CaseFormatError,
    CaseInfo,
    LoadedCase,
    save_case,
    load_case,
    export_case,
    case_record,
    save_case_record,
    list_cases,
)

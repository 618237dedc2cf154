"""
Centralized custom exception definitions for the attendance cleaner.

Each exception inherits from BaseAppError, which itself extends Werkzeug's
HTTPException, allowing clean integration with Flask's error system and
JSON-formatted API responses. User-facing messages are Arabic.

Domain Groups:
--------------
1. Validation Errors (400)
2. Upload / Ingest Errors (408, 413)
3. Storage Errors (404, 503)
4. System Errors (500)
"""

from werkzeug.exceptions import HTTPException


class BaseAppError(HTTPException):
    """Root application error, base for all custom exceptions."""
    code = 500
    description = "Application error"

    def __init__(self, message=None, details=None, code=None):
        super().__init__(description=message or self.description)
        self.message = message or self.description
        self.details = details or {}
        if code:
            self.code = code

    def to_dict(self):
        """Serialize error info into a JSON-safe dictionary."""
        return {
            "status": "error",
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


# ==============================================================================
# 1. VALIDATION ERRORS (HTTP 400)
# ==============================================================================

class ValidationError(BaseAppError):
    code = 400
    description = "بيانات غير صحيحة"


class NoFileError(ValidationError):
    description = "لم يتم رفع أي ملف"


class MissingSectionError(ValidationError):
    description = "لم يتم العثور على قسم 'Attendee Details' في الملف"

    def __init__(self, message=None, details=None):
        details = details or {"hint": "تأكد من أن الملف يحتوي على قسم بعنوان 'Attendee Details'"}
        super().__init__(message, details)


class InvalidFilterError(ValidationError):
    description = "حالة التصفية غير معروفة"


class InvalidUpdateError(ValidationError):
    """Row validation rejected an edit; ``errors`` lists the Arabic messages."""

    def __init__(self, errors, message=None):
        super().__init__(message, {"errors": list(errors)})
        self.errors = list(errors)

    def to_dict(self):
        payload = super().to_dict()
        payload["errors"] = list(self.errors)
        return payload


# ==============================================================================
# 2. UPLOAD / INGEST ERRORS (HTTP 408, 413)
# ==============================================================================

class InputTooLargeError(BaseAppError):
    code = 413
    description = "الملف كبير جداً للمعالجة. حاول تقسيمه إلى ملفات أصغر"


class IngestTimeoutError(BaseAppError):
    code = 408
    description = "المعالجة استغرقت وقتاً أطول من المتوقع. حاول بملف أصغر أو ببيانات أقل"


# ==============================================================================
# 3. STORAGE ERRORS (HTTP 404, 503)
# ==============================================================================

class RecordNotFoundError(BaseAppError):
    code = 404
    description = "السجل غير موجود"


class StorageFailureError(BaseAppError):
    code = 503
    description = "خطأ في حفظ البيانات. حاول مرة أخرى"


# ==============================================================================
# 4. SYSTEM ERRORS (HTTP 500)
# ==============================================================================

class UnexpectedError(BaseAppError):
    code = 500
    description = "خطأ في معالجة الملف"

import re
from typing import Optional, List, Any

from bson import ObjectId

from .errors import ValidationException, ValidationError


class Validator:
    """입력 검증을 위한 유틸리티 클래스"""

    @staticmethod
    def validate_object_id(value: str, field_name: str = "id") -> str:
        """MongoDB ObjectId 형식 검증"""
        if not value or not ObjectId.is_valid(value):
            raise ValidationException(
                f"Invalid {field_name}",
                validation_errors=[
                    ValidationError(field=field_name, message="Must be a valid ObjectId", value=value)
                ]
            )
        return value

    @staticmethod
    def validate_note_content(content: Optional[str], max_length: int, field_name: str = "content") -> str:
        """노트 텍스트 검증 후 앞뒤 공백 제거"""
        if content is None:
            return ""

        errors = []
        content = content.strip()

        if len(content) > max_length:
            errors.append(
                ValidationError(
                    field=field_name,
                    message=f"Note content must be {max_length} characters or less",
                    value=len(content)
                )
            )

        # 제어 문자 검증
        if re.search(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', content):
            errors.append(
                ValidationError(
                    field=field_name,
                    message="Note content contains invalid control characters"
                )
            )

        if errors:
            raise ValidationException(
                "Note content validation failed",
                validation_errors=errors
            )

        return content

    @staticmethod
    def validate_non_negative_integer(value: Any, field_name: str) -> int:
        """0 이상의 정수 검증"""
        try:
            int_value = int(value)
            if int_value < 0:
                raise ValueError("Must not be negative")
            return int_value
        except (ValueError, TypeError):
            raise ValidationException(
                f"{field_name} must be a non-negative integer",
                validation_errors=[
                    ValidationError(
                        field=field_name,
                        message="Must be a non-negative integer",
                        value=value
                    )
                ]
            )

    @staticmethod
    def validate_multiple_fields(validations: List[callable]) -> List[Any]:
        """여러 필드 동시 검증"""
        errors = []
        results = []

        for validation_func in validations:
            try:
                result = validation_func()
                results.append(result)
            except ValidationException as e:
                errors.extend(e.validation_errors)

        if errors:
            raise ValidationException(
                "Multiple validation errors",
                validation_errors=errors
            )

        return results


def validate_note_creation(
    content: Optional[str],
    voice_message: Optional[str],
    voice_duration: Optional[int],
    image_data: Optional[str],
    max_length: int = 500
) -> tuple[str, int]:
    """
    노트 생성 데이터 검증

    텍스트, 음성, 이미지 중 최소 하나는 있어야 한다.

    Returns:
        (정리된 content, voice_duration)
    """
    validator = Validator()

    cleaned, duration = validator.validate_multiple_fields([
        lambda: validator.validate_note_content(content, max_length),
        lambda: validator.validate_non_negative_integer(voice_duration or 0, "voice_duration"),
    ])

    if not cleaned and not voice_message and not image_data:
        raise ValidationException(
            "Note content, voice message, or image is required",
            validation_errors=[
                ValidationError(
                    field="content",
                    message="Note content, voice message, or image is required"
                )
            ]
        )

    return cleaned, duration

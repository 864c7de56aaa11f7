from django.core.validators import RegexValidator

MOBILE_PHONE_REGEX = r"^1[3-9]\d{9}$"

mobile_phone_validator = RegexValidator(
    regex=MOBILE_PHONE_REGEX,
    message="Enter a valid mobile phone number.",
    code="invalid_phone",
)

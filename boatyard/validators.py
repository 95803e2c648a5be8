from typing import Optional

def non_empty_string_validator(field_name: str = "Value"):
    def validator(v: str) -> str:
        if not v or len(v.strip()) == 0:
            raise ValueError(f'{field_name} cannot be empty')
        return v.strip()
    return validator

def non_empty_string_optional_validator(field_name: str = "Value"):
    def validator(v: Optional[str]) -> Optional[str]:
        if v is not None:
            return non_empty_string_validator(field_name)(v)
        return v
    return validator

def string_length_validator(max_length: int, field_name: str = "Value"):
    def validator(v: str) -> str:
        if not v or len(v.strip()) == 0:
            raise ValueError(f'{field_name} cannot be empty')
        if len(v) > max_length:
            raise ValueError(f'{field_name} cannot exceed {max_length} characters')
        return v.strip()
    return validator

def bounded_int_validator(min_val: int, max_val: int, field_name: str = "Value"):
    def validator(v: int) -> int:
        if v < min_val:
            raise ValueError(f'{field_name} must be at least {min_val}')
        if v > max_val:
            raise ValueError(f'{field_name} cannot exceed {max_val}')
        return v
    return validator

def bounded_int_optional_validator(min_val: int, max_val: int, field_name: str = "Value"):
    def validator(v: Optional[int]) -> Optional[int]:
        if v is not None:
            return bounded_int_validator(min_val, max_val, field_name)(v)
        return v
    return validator

def positive_float_optional_validator(field_name: str = "Value"):
    def validator(v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f'{field_name} must be positive')
        return v
    return validator

import pytest

from dbuswire.errors import (
    MarshalError,
    MarshalErrorKind,
    UnmarshalError,
    UnmarshalErrorKind,
)
from dbuswire.signature import SignatureError, SignatureErrorKind
from dbuswire.validation import (
    ValidationError,
    ValidationErrorKind,
    validate_object_path,
)


def test_marshal_from_validation_wraps_error():
    inner = ValidationError(ValidationErrorKind.INVALID_OBJECT_PATH)
    err = MarshalError.from_validation(inner)
    assert err.kind is MarshalErrorKind.VALIDATION
    assert err.detail == inner
    assert str(err) == "Errors occured while validating: Invalid object path"


def test_marshal_from_signature_error_nests_two_levels():
    sig_err = SignatureError(SignatureErrorKind.INVALID_SIGNATURE)
    err = MarshalError.from_validation(sig_err)
    assert err == MarshalError(
        MarshalErrorKind.VALIDATION,
        ValidationError(ValidationErrorKind.INVALID_SIGNATURE, sig_err),
    )
    assert err.detail.signature_error.kind is SignatureErrorKind.INVALID_SIGNATURE


def test_marshal_from_real_validation_failure():
    with pytest.raises(ValidationError) as info:
        validate_object_path("invalid/object/path")
    err = MarshalError.from_validation(info.value)
    assert err == MarshalError.from_validation(
        ValidationError(ValidationErrorKind.INVALID_OBJECT_PATH)
    )


def test_marshal_error_without_detail():
    err = MarshalError(MarshalErrorKind.INVALID_MESSAGE_TYPE)
    assert str(err) == MarshalErrorKind.INVALID_MESSAGE_TYPE.value
    assert not err == MarshalError(MarshalErrorKind.EMPTY_UNIX_FD)


def test_from_validation_rejects_other_errors():
    with pytest.raises(TypeError):
        MarshalError.from_validation(KeyError("x"))
    with pytest.raises(TypeError):
        UnmarshalError.from_validation(KeyError("x"))


def test_unmarshal_from_validation():
    sig_err = SignatureError(SignatureErrorKind.NESTING_TOO_DEEP)
    err = UnmarshalError.from_validation(sig_err)
    assert err.kind is UnmarshalErrorKind.VALIDATION
    assert err.detail == ValidationError.from_signature_error(sig_err)
    assert SignatureErrorKind.NESTING_TOO_DEEP.value in str(err)


def test_is_end_of_message():
    assert UnmarshalError(UnmarshalErrorKind.END_OF_MESSAGE).is_end_of_message()
    assert not UnmarshalError(UnmarshalErrorKind.NOT_ENOUGH_BYTES).is_end_of_message()


def test_bad_fd_index_keeps_index_and_compares_by_it():
    err = UnmarshalError(UnmarshalErrorKind.BAD_FD_INDEX, 3)
    assert err.detail == 3
    assert err == UnmarshalError(UnmarshalErrorKind.BAD_FD_INDEX, 3)
    assert not err == UnmarshalError(UnmarshalErrorKind.BAD_FD_INDEX, 4)


def test_errors_are_raisable_and_hashable():
    err = UnmarshalError(UnmarshalErrorKind.INVALID_SERIAL)
    with pytest.raises(UnmarshalError) as info:
        raise err
    assert info.value == err
    assert len({err, UnmarshalError(UnmarshalErrorKind.INVALID_SERIAL)}) == 1
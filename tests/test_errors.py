import pytest

from utils.errors import (InvalidConditionTableError, ResourceImportError, TrialHandlerError,
                          UnknownOrderingPolicyError)


@pytest.mark.parametrize("error_type", [InvalidConditionTableError, ResourceImportError,
                                        UnknownOrderingPolicyError])
def test_errors_share_a_base_class(error_type):
    error = error_type('TrialHandler.advance', 'when advancing', 'bad state')
    assert isinstance(error, TrialHandlerError)
    assert isinstance(error, Exception)
    assert str(error) == 'TrialHandler.advance: when advancing: bad state'


def test_error_without_cause():
    error = TrialHandlerError('TrialHandler', 'when preparing')
    assert error.error is None
    assert str(error) == 'TrialHandler: when preparing'


def test_error_can_wrap_an_exception():
    cause = FileNotFoundError('missing.csv')
    with pytest.raises(ResourceImportError) as error:
        raise ResourceImportError('import_conditions', 'when importing', cause) from cause
    assert error.value.error is cause
    assert error.value.__cause__ is cause
    assert 'missing.csv' in str(error.value)

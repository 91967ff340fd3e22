"""
Tests for the operator confirmation gate.
"""

from unittest.mock import Mock

import pytest

from recovery.confirmer import RecoveryConfirmer
from recovery.exceptions import RecoveryAborted
from recovery.providers import StaticConfirmationProvider
from recovery.request import Output


OUTPUTS = [Output(address='1BoatSLRHtKNngkdXEeobR76b53LETtpyT', amount='0.01')]


def make_confirmer(response):
    lines = []
    confirmer = RecoveryConfirmer(StaticConfirmationProvider(response), echo=lines.append)
    return confirmer, lines


class TestRecoveryConfirmer:
    """Test summary rendering and the confirmation token."""

    def test_summary(self):
        confirmer, lines = make_confirmer('go')
        confirmer.confirm('xpub123', OUTPUTS, 'hello')

        assert lines == [
            'Sign Recovery Transaction',
            '=========================',
            'Backup Key: xpub123',
            'Output Address: 1BoatSLRHtKNngkdXEeobR76b53LETtpyT',
            'Output Amount: 0.01',
            'Custom Message: hello',
            '=========================',
        ]

    def test_missing_message_placeholder(self):
        confirmer, lines = make_confirmer('go')
        confirmer.confirm('xpub123', OUTPUTS, None)

        assert 'Custom Message: None' in lines

    def test_every_output_listed(self):
        outputs = OUTPUTS + [Output(address='3Change', amount='2.5')]
        confirmer, lines = make_confirmer('go')
        confirmer.confirm('xpub123', outputs, None)

        assert lines.count('Output Address: 3Change') == 1
        assert 'Output Amount: 2.5' in lines

    @pytest.mark.parametrize("answer", ['', 'Go', 'GO', 'yes', ' go', 'go ', 'gogo'])
    def test_anything_but_go_aborts(self, answer):
        confirmer, _ = make_confirmer(answer)
        with pytest.raises(RecoveryAborted) as exc_info:
            confirmer.confirm('xpub123', OUTPUTS, None)
        assert str(exc_info.value) == 'recovery aborted'

    def test_skip_does_not_ask(self):
        provider = Mock()
        lines = []
        RecoveryConfirmer(provider, echo=lines.append).confirm('xpub123', OUTPUTS, None, skip=True)

        provider.get_confirmation.assert_not_called()
        assert lines[0] == 'Sign Recovery Transaction'

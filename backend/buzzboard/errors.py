"""Domain errors raised by the game machine and its collaborators.

Each error that is reported back to a client names the outbound event it is
delivered as. Errors are only ever sent to the connection that caused them.
"""


class BuzzboardError(Exception):
    event = 'action-error'

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message

    def payload(self):
        return {'message': self.message}


class AuthError(BuzzboardError):
    """Bad password, unknown or inactive session, or a name already in use."""
    event = 'auth-error'

    def payload(self):
        return self.message


class ValidationError(BuzzboardError):
    """Malformed action or out-of-range argument. State is left unchanged."""
    event = 'action-error'


class InvalidWager(ValidationError):
    event = 'invalid-wager'

    def __init__(self, max_wager: int):
        super().__init__(f'Wager must be between 0 and {max_wager}')
        self.max_wager = max_wager

    def payload(self):
        return {'maxWager': self.max_wager}


class AuthorizationError(BuzzboardError):
    """Wrong role or wrong holder for a gated action; never reported."""


class ResourceError(BuzzboardError):
    event = 'resource-error'

    def payload(self):
        return {'error': self.message}


class QuestionBankNotFound(ResourceError):
    pass


class QuestionBankParseError(ResourceError):
    pass


class GenerationError(ResourceError):
    event = 'questions-generation-error'


class GenerationUnavailable(GenerationError):
    """No generation credential configured, or a generation already running."""

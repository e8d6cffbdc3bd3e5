"""Exception types shared across the tutor."""


class TutorError(Exception):
    """Base class for all tutor errors."""


class LoadError(TutorError):
    """The question bank could not be loaded."""


class QuestionBankNotFound(LoadError):
    pass


class QuestionBankMalformed(LoadError):
    pass


class NotFoundError(TutorError, LookupError):
    """A chapter index or card id does not refer to anything in the store."""


class PersistError(TutorError):
    """Progress could not be written to the key-value store."""


class MSeedException(Exception):
    """ Base for all errors raised by mseedreader."""
    pass


class EndOfStream(MSeedException):
    """
    No more records in the file.

    Not really an error, raised by RecordReader.read_next() to signal that
    the file is exhausted.
    """
    pass


class DecodeError(MSeedException):
    """
    The decoder reported a failure, malformed input, an I/O problem or
    an unsupported sample conversion. The raw status code is kept in code.
    """

    def __init__(self, code, message=None):
        if message is None:
            message = f"decode error: {code}"
        super().__init__(message)
        self.code = code
        self.message = message
        self.name = "DecodeError"


class InvariantViolation(MSeedException):
    """
    A contract with the decoder was broken.

    Always fatal for the current operation, continuing could mean reading
    memory that is no longer valid.
    """

    def __init__(self, message):
        super().__init__(message)
        self.message = message
        self.name = "InvariantViolation"


class StaleRecordError(InvariantViolation):
    def __init__(self, message):
        super().__init__(message)
        self.name = "StaleRecordError"


class ArchiveNotLoaded(InvariantViolation):
    def __init__(self, message):
        super().__init__(message)
        self.name = "ArchiveNotLoaded"


class CodecException(MSeedException):
    def __init__(self, message):
        super().__init__(message)
        self.message = message
        self.name = "CodecException"


class SteimException(CodecException):
    def __init__(self, message):
        super().__init__(message)
        self.name = "SteimException"


class UnsupportedCompressionType(CodecException):
    def __init__(self, message):
        super().__init__(message)
        self.message = message
        self.name = "UnsupportedCompressionType"

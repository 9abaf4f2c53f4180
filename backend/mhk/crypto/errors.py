class KnapsackError(ValueError):
    """Base class for message and ciphertext validation failures."""


class EmptyMessage(KnapsackError):
    pass


class InvalidLength(KnapsackError):
    pass


class MalformedCiphertext(KnapsackError):
    pass


class InvalidEncoding(KnapsackError):
    pass

class SignatureError(Exception):
    """Base exception for signature stamping errors"""
    pass

class InvalidSignatureFormatError(SignatureError):
    pass

class SourceUnavailableError(SignatureError):
    """The document bytes could not be read as a PDF"""
    pass

class NoPlacementForRoleError(SignatureError):
    """Neither the template nor the fallback layout has a slot for the role"""

    def __init__(self, document_type: str, role: str):
        self.document_type = document_type
        self.role = role
        super().__init__(f"No signature placement for role '{role}' on '{document_type}'")

class StampingError(SignatureError):
    pass

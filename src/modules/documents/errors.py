class DocumentError(Exception):
    """Base exception for document and template errors"""
    pass

class DocumentNotFoundError(DocumentError):
    pass

class DocumentValidationError(DocumentError):
    pass

class TemplateValidationError(DocumentError):
    pass

class InvalidHashFormatError(DocumentError):
    def __init__(self, value):
        self.value = value
        super().__init__("Invalid hash format: expected 64 hexadecimal characters")

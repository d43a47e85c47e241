from .placement import PlacementResolver, SignatureLayouts
from .stamper import SignatureStamper, parse_signature_data_uri, is_image_data_uri
from .signature_crypto import SignatureCipher

__all__ = [
    'PlacementResolver', 'SignatureLayouts', 'SignatureStamper',
    'parse_signature_data_uri', 'is_image_data_uri', 'SignatureCipher'
]

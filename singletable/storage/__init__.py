from .s3 import ObjectStoreConnector, s3_call

__all__ = ["ObjectStoreConnector", "s3_call"]

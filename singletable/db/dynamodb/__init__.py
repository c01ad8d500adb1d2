"""DynamoDB single-table utilities.

This package centralizes:
- boto3 resource/client configuration
- sparse update statements
- cursor pagination and opaque token encoding/decoding
- typed errors for consistent failure handling
- the async table connector

"""

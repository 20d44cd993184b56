"""Movie catalog service: DynamoDB-backed records with cached Amazon Translate lookups"""

__version__ = "1.0.0"

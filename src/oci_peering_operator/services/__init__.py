"""Remote service implementations."""

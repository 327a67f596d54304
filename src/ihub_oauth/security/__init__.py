# Session credential verification and request rate limiting.

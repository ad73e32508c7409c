"""Gemini dispatch core.

Sends a generation request to the Google Generative Language API through
a pool of API keys with:
  - Credential Pool (ordered, loaded once at startup)
  - Error Classifier (retry / failover / fatal / network)
  - Dispatcher state machine (exponential backoff, failover, deadline)
  - Response Normalizer (flat reply text, embedded JSON)
"""

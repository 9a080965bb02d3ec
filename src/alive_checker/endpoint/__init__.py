"""ANPR C019 verification endpoint: request body, rate limit, call, and outcome classification."""

"""Infrastructure adapters: document store, blob store, account functions, logging."""

"""Core mail domain: message model, MIME composition and SMTP transport."""

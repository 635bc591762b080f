"""Personal book tracking web application."""

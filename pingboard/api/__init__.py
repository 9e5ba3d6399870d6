"""HTTP routers for Pingboard."""

"""HTTP service: application factory, routers, middleware and shutdown coordination."""

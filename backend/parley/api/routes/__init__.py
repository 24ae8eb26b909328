# HTTP routes

"""HTTP layer: auth API routers, page routes and the edge route guard."""

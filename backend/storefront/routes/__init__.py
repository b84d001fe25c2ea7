"""
Storefront Backend — API Routes Package
=========================================

What:  HTTP route handlers; thin wrappers that validate input, call a service
       and wrap the result in the response envelope.

Route Inventory (all under /api/v1 except /health):
    - base.py:        GET    /base/get/count
    - users.py:       POST   /users/login
    - categories.py:  /categories/create, get/all, get/names, get/{id}, {id},
                      update/{id}, delete/{id}
    - products.py:    /products/create, get/all, get/recent, {id},
                      update/{id}, delete/{id}
    - blogs.py:       /blogs/create, get/all, get/recent, {id},
                      update/{id}, delete/{id}
    - banners.py:     /banners/create, get, get/all, {id}, update/{id},
                      delete/{id}
    - health.py:      GET    /health

Business logic belongs in services, not routes.
"""

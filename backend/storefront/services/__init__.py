"""
Storefront Backend — Services Layer
=====================================

What:  Business logic between routes (HTTP) and the document store.
How:   Stateless singletons; each call receives the database handle injected
       by FastAPI.

Service Inventory:
    - ImageService:        MIME check, resize, JPEG re-encode
    - UploadSource:        memory or disk staging (chosen by MEMORY)
    - AssetHost (abstract) / CloudinaryAssetHost: remote image storage
    - ContentService:      upload-before-write choreography shared by
                           ProductService, CategoryService, BlogService and
                           BannerService
    - StatsService:        dashboard counts
    - UserService:         admin login
"""

# Services package.
#
# Each module exposes async functions holding the business logic and
# database access for one aggregate:
#
#   account_service  — registration, login, profile, cascading self-deletion
#   post_service     — post CRUD with ownership checks and cache-aside reads
#   comment_service  — comment CRUD with ownership checks
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency. Mutations take the caller's Principal explicitly.

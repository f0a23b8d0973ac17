# Merchant service: the storefront's remote collaborator

"""Platform layer: errors, tenant resolution, RBAC and the request pipeline."""

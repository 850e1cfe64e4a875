class TenantAdminMixin:
    """
    Enforce tenant isolation in Django admin.
    Uses request.company (set by CurrentCompanyMiddleware)
    or falls back to request.user.default_company.
    """

    # lookup from the model to its Company; lines go through their entry
    tenant_field = "company"

    def _get_request_company(self, request):
        # prefer request.company (middleware)
        # but fall back to the user's default company
        company = getattr(request, "company", None)
        if company is None:
            user = getattr(request, "user", None)
            company = getattr(user, "default_company", None)
        return company

    def get_queryset(self, request):
        qs = super().get_queryset(request)

        # If superuser, show everything;
        # otherwise restrict to company if available
        if request.user.is_superuser:
            return qs
        company = self._get_request_company(request)
        if company is None:
            # If no company available in request, return none
            return qs.none()
        return qs.filter(**{self.tenant_field: company})

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        """
        Restrict foreignkey dropdowns to the current company where appropriate:
        company field, account field, fiscal year field.
        """
        if not request.user.is_superuser:
            company = self._get_request_company(request)
            rel_model = getattr(db_field, "related_model", None)
            if db_field.name == "company":
                kwargs["queryset"] = (
                    rel_model.objects.filter(pk=company.pk) if company else rel_model.objects.none()
                )
            elif rel_model is not None and hasattr(rel_model, "company"):
                # if related model has a `company` field, restrict it to request's company
                kwargs["queryset"] = (
                    rel_model.objects.filter(company=company) if company else rel_model.objects.none()
                )
        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def save_model(self, request, obj, form, change):
        # Ensure object is always owned by company on save (unless superuser)
        if not request.user.is_superuser and self.tenant_field == "company":
            company = self._get_request_company(request)
            if company is not None:
                obj.company = company
        super().save_model(request, obj, form, change)

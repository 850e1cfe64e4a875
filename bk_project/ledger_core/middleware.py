from django.utils.deprecation import MiddlewareMixin

from .models import Company


class CurrentCompanyMiddleware(MiddlewareMixin):
    # Run on every request and
    # attach a .company attribute to the request, based on the logged-in user
    def process_request(self, request):
        request.company = None
        if not request.user.is_authenticated:
            # Unauthenticated users get no tenant
            return

        # Default company fallback: if the user didn't choose a company
        request.company = getattr(request.user, "default_company", None)

        # If the user switched companies,
        # the choice is stored in the session as "active_company_id"
        company_id = request.session.get("active_company_id")
        if company_id:
            # ensure security: the user must own that company or have it as default,
            # so a tampered session can't "jump" into another tenant
            request.company = (
                Company.objects.filter(id=company_id, owner=request.user).first()
                or (request.company if request.company and request.company.pk == company_id else None)
            )

# Views for scanner app

from django.http import HttpResponseForbidden
from django.shortcuts import render
from django.views import View

from apps.core.models import StaffToken


class ScannerView(View):
    """Staff QR Scanner Interface"""

    def get(self, request, token):
        staff_token = StaffToken.lookup(token)
        if staff_token is None:
            return HttpResponseForbidden("Invalid or expired scanner token")

        context = {
            'token': token,
            'staff': staff_token.staff,
            'api_base': '/api/v1',
        }
        return render(request, 'scanner/scanner.html', context)

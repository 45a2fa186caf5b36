"""Branded error pages for the whole site."""

import logging

from django.http import HttpRequest, HttpResponse, HttpResponseNotFound, HttpResponseServerError
from django.shortcuts import render

logger = logging.getLogger(__name__)


def custom_permission_denied_view(request: HttpRequest, exception=None) -> HttpResponse:
    logger.info("403 for %s on %s", getattr(request.user, "pk", None), request.path)
    message = str(exception) if exception else ""
    return render(request, "403.html", {"message": message}, status=403)


def custom_page_not_found_view(request: HttpRequest, exception=None) -> HttpResponse:
    return HttpResponseNotFound(render(request, "404.html").content)


def custom_server_error_view(request: HttpRequest) -> HttpResponse:
    logger.error("500 on %s", request.path)
    return HttpResponseServerError(render(request, "500.html").content)

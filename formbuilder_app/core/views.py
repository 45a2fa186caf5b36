import logging

from django.contrib import messages
from django.contrib.auth import login
from django.contrib.auth.decorators import login_required
from django.http import HttpResponse
from django.shortcuts import redirect, render

from formbuilder_app.questionnaires.catalog import available_types

from .forms import SignupForm
from .models import AccountTier

logger = logging.getLogger(__name__)


def home(request):
    if request.user.is_authenticated:
        return redirect("questionnaires:list")
    return render(request, "core/home.html")


def healthz(request):
    """Lightweight health endpoint for load balancers and readiness probes.
    Returns 200 OK without auth or redirects.
    """
    return HttpResponse("ok", content_type="text/plain")


@login_required
def profile(request):
    tier = AccountTier.tier_for(request.user)
    return render(
        request,
        "core/profile.html",
        {
            "tier": tier,
            "available_type_count": len(available_types(tier)),
            "questionnaire_count": request.user.questionnaires.count(),
        },
    )


def signup(request):
    if request.method == "POST":
        form = SignupForm(request.POST)
        if form.is_valid():
            user = form.save()
            # Axes adds a second backend, so login() needs an explicit one here
            login(request, user, backend="django.contrib.auth.backends.ModelBackend")
            logger.info("New account created: %s", user.username)
            messages.success(request, "Welcome! Create your first form to get started.")
            return redirect("questionnaires:list")
    else:
        form = SignupForm()
    return render(request, "registration/signup.html", {"form": form})

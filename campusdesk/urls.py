"""
URL configuration for campusdesk project.

Only the Django admin is mounted here; the registrar services are called
from whichever views or API layer the deployment adds.
"""
from django.contrib import admin
from django.urls import path

urlpatterns = [
    # Django admin
    path('admin/', admin.site.urls),
]

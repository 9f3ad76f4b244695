"""
URL configuration for campus_market project.
"""
from django.contrib import admin
from django.urls import include, path

from market.api.views import graphql_view

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('market.api.urls')),
    path('graphql/', graphql_view, name='graphql'),
]

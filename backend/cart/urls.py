"""
URL configuration for the workspace API.
"""

from django.urls import path
from .views import WorkspaceViewSet

app_name = 'cart'

urlpatterns = [
    # GET/POST /api/workspace/ - Active workspace
    path('', WorkspaceViewSet.as_view({'get': 'retrieve', 'post': 'create'}), name='workspace-active'),

    # Lines
    path('lines/', WorkspaceViewSet.as_view({'post': 'add_line'}), name='workspace-add-line'),
    path(
        'lines/<uuid:line_id>/',
        WorkspaceViewSet.as_view({'patch': 'update_line', 'delete': 'remove_line'}),
        name='workspace-line',
    ),
    path('clear/', WorkspaceViewSet.as_view({'post': 'clear'}), name='workspace-clear'),

    # Attachments
    path('customer/', WorkspaceViewSet.as_view({'post': 'customer'}), name='workspace-customer'),
    path('table/', WorkspaceViewSet.as_view({'post': 'table'}), name='workspace-table'),
    path('discount/', WorkspaceViewSet.as_view({'post': 'discount'}), name='workspace-discount'),

    # Lifecycle
    path('confirm/', WorkspaceViewSet.as_view({'post': 'confirm'}), name='workspace-confirm'),
    path('held/', WorkspaceViewSet.as_view({'get': 'held'}), name='workspace-held'),
    path('release-stale/', WorkspaceViewSet.as_view({'post': 'release_stale'}), name='workspace-release-stale'),
    path('<uuid:workspace_id>/', WorkspaceViewSet.as_view({'get': 'retrieve_workspace'}), name='workspace-detail'),
    path('<uuid:workspace_id>/hold/', WorkspaceViewSet.as_view({'post': 'hold'}), name='workspace-hold'),
    path('<uuid:workspace_id>/resume/', WorkspaceViewSet.as_view({'post': 'resume'}), name='workspace-resume'),
    path('<uuid:workspace_id>/discard/', WorkspaceViewSet.as_view({'post': 'discard'}), name='workspace-discard'),
]

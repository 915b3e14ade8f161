from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import TicketViewSet, AgentListView

router = DefaultRouter()
router.register(r'support/tickets', TicketViewSet, basename='support-ticket')

urlpatterns = [
    path('support/agents/', AgentListView.as_view(), name='support_agents'),
    path('', include(router.urls)),
]

from django.urls import path
from rest_framework.routers import SimpleRouter

from .views import CandidateDetailView, CandidateListByElectionView, ElectionViewSet

app_name = "elections"

router = SimpleRouter()
router.register(r"", ElectionViewSet, basename="election")


urlpatterns = [
    path(
        "<uuid:election_id>/candidates/",
        CandidateListByElectionView.as_view(),
        name="election-candidates",
    ),
    path(
        "<uuid:election_id>/candidates/<uuid:pk>/",
        CandidateDetailView.as_view(),
        name="candidate-detail",
    ),
]

urlpatterns += router.urls

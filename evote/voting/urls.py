from django.urls import path

from .views import ElectionResultsView, MyVoteView, VoteCreateView, VotingHistoryView

app_name = "voting"

urlpatterns = [
    path("history/", VotingHistoryView.as_view(), name="voting_history"),
    path("<uuid:election_id>/vote/", VoteCreateView.as_view(), name="cast_vote"),
    path("<uuid:election_id>/my-vote/", MyVoteView.as_view(), name="my_vote"),
    path(
        "<uuid:election_id>/results/",
        ElectionResultsView.as_view(),
        name="election_results",
    ),
]

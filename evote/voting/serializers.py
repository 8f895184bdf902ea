from elections.models import Candidate
from rest_framework import serializers

from .models import Vote


class CandidateDetailSerializer(serializers.ModelSerializer):
    """
    Nested Serializer for candidate details
    """
    class Meta:
        model = Candidate
        fields = ['id', 'name', 'party']


class VoteListSerializer(serializers.ModelSerializer):
    """
    Serializer for listing votes (GET request)
    """
    candidate = CandidateDetailSerializer(read_only=True)
    voter = serializers.CharField(source='voter.display_name', read_only=True)

    class Meta:
        model = Vote
        fields = ['id', 'voter', 'candidate', 'voted_at']


class VoteCreateSerializer(serializers.Serializer):
    """
    Input for casting a vote. Only the shape of the request is checked
    here; the voting rules live in `VotingService`.
    """
    candidate_id = serializers.PrimaryKeyRelatedField(queryset=Candidate.objects.all(), source='candidate')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        # get election from context (passed from the view)
        election = self.context.get('election')

        if election:
            # Only candidates of this election resolve
            self.fields['candidate_id'].queryset = Candidate.objects.filter(election=election)


class MyVoteSerializer(serializers.ModelSerializer):
    """
    Serializer for user's own vote, used by the voting history.
    """
    candidate = CandidateDetailSerializer(read_only=True)
    election_title = serializers.CharField(source='election.title', read_only=True)
    election_status = serializers.CharField(source='election.status', read_only=True)

    class Meta:
        model = Vote
        fields = ['id', 'election', 'election_title', 'election_status', 'candidate', 'voted_at']

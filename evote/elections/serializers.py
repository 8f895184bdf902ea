import logging

from django.db import transaction
from rest_framework import serializers

from .models import Candidate, Election

logger = logging.getLogger("elections")


def _check_candidate_name(name):
    name = (name or "").strip()
    if len(name) <= 1:
        logger.warning("Candidate name too short.")
        raise serializers.ValidationError("Candidate name must have at least 2 characters.")
    return name


class CandidateSerializer(serializers.ModelSerializer):
    """
    Serializer for creating and updating Candidate instances.
    it handles the serialization and deserialization of the candidates data.
    """

    class Meta:
        model = Candidate
        # fields to be inclued in the serialized output
        fields = ["id", "name", "party", "bio", "photo", "election", "vote_count"]
        # `election` is determined by the URL and `vote_count` by the voting service
        read_only_fields = ["election", "vote_count"]

    def validate_name(self, value):
        return _check_candidate_name(value)

    def validate(self, data):
        """
        Custom validation for candidate data
        """
        instance = self.instance
        # Get the name from the incoming data or from the existing instance if not provided.
        name = data.get("name", instance.name if instance else None)
        election_id = instance.election_id if instance else self.context.get("election_id")

        logger.debug(
            f"Validating candidate: name = {name}, election = {election_id}, instance = {instance}"
        )

        # Ensure the candidate name is unique within the election
        qs = Candidate.objects.filter(name__iexact=name, election_id=election_id)
        if instance:
            qs = qs.exclude(pk=instance.pk)
        if qs.exists():
            logger.warning(
                f"Candidate with name: '{name}' already exists in the election: '{election_id}'"
            )
            raise serializers.ValidationError("Candidate with the name already exists")
        logger.info(f"Candidate '{name}' passed validation for election '{election_id}'.")
        return data


class CandidateInlineSerializer(serializers.ModelSerializer):
    """
    Candidate as nested inside an election payload.
    """

    class Meta:
        model = Candidate
        fields = ["id", "name", "party", "bio", "photo", "vote_count"]
        read_only_fields = ["id", "photo", "vote_count"]

    def validate_name(self, value):
        return _check_candidate_name(value)


class ElectionSerializer(serializers.ModelSerializer):
    """
    Serializer for creating and updating Election instances, with their
    candidates nested. The status is derived from the dates on every read.
    """

    status = serializers.CharField(read_only=True)
    candidates = CandidateInlineSerializer(many=True, required=False)
    created_by = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Election
        fields = (
            "id",
            "title",
            "description",
            "start_time",
            "end_time",
            "status",
            "rules",
            "candidates",
            "total_votes",
            "created_by",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("total_votes", "created_at", "updated_at")

    def validate_rules(self, value):
        if not isinstance(value, list) or not all(isinstance(rule, str) for rule in value):
            raise serializers.ValidationError("Rules must be a list of strings.")
        return [rule.strip() for rule in value if rule.strip()]

    def validate_candidates(self, value):
        names = [candidate["name"].lower() for candidate in value]
        if len(names) != len(set(names)):
            raise serializers.ValidationError("Candidate names must be unique within an election.")
        return value

    def validate(self, data):
        """
        Add custom validation for business rules that are not covered by the model field validation.
        This method is called when `serializer.is_valid()` is executed
        """
        # self.instance is the object being updated, or None for a new object creation.
        instance = self.instance
        # get start_time or end_time from incoming data, or from the existing instance if not provided.
        start_time = data.get("start_time", instance.start_time if instance else None)
        end_time = data.get("end_time", instance.end_time if instance else None)

        logger.debug(
            f"Validating election: Start_time:{start_time}, End_time:{end_time}, instance = {instance}"
        )

        # End time must be after start time.
        if start_time and end_time and start_time >= end_time:
            logger.warning("End time must be after start time.")
            raise serializers.ValidationError(
                "The election's end time must be after its start time."
            )
        return data

    @transaction.atomic
    def create(self, validated_data):
        candidates = validated_data.pop("candidates", [])
        election = Election.objects.create(**validated_data)
        Candidate.objects.bulk_create(
            [Candidate(election=election, **candidate) for candidate in candidates]
        )
        logger.info(f"Election created: {election.title} with {len(candidates)} candidates")
        return election

    @transaction.atomic
    def update(self, instance, validated_data):
        candidates = validated_data.pop("candidates", None)
        election = super().update(instance, validated_data)
        # A supplied candidate list, even an empty one, replaces the existing candidates.
        if candidates is not None:
            instance.candidates.all().delete()
            Candidate.objects.bulk_create(
                [Candidate(election=election, **candidate) for candidate in candidates]
            )
            # votes for the removed candidates went with them
            election.total_votes = election.votes.count()
            election.save(update_fields=["total_votes"])
            logger.info(f"Candidates replaced for election: {election.title}")
        logger.info(f"Election updated by admin: {instance.title}")
        return election


class VoterVotingStatusSerializer(serializers.Serializer):
    """
    One row of the per-election "who has voted" table.
    """

    id = serializers.IntegerField()
    name = serializers.CharField(source="display_name")
    email = serializers.EmailField()
    registration_id = serializers.CharField(allow_null=True)
    has_voted = serializers.BooleanField()

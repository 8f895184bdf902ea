#serializer module provides functionalities for serializing & deserializing complex data into JSON
import logging

from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from .models import User
from .registration import format_registration_id

logger = logging.getLogger('accounts')


class UserRegistrationSerializer(serializers.ModelSerializer):
    """
    serializer for creating user.
    """
    password = serializers.CharField(write_only=True, required=True, style={'input_type':'password'}) # 'style={'input_type': 'password'}' helps DRF's browsable API render this as a password input field.

    # Meta class provides the metadata of the model and field to be included in the serializer
    class Meta:
        model = User
        # Tuple of the field from the user model(i.e. accounts/model.py) that will be included in the serialized data
        fields = ('id', 'username', 'password', 'email', 'name', 'registration_id')
        read_only_fields = ('id', 'registration_id')

    def validate_email(self, value):
        if value and User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email already in use")
        return value

    def validate_password(self, value):
        validate_password(value)
        return value

    #method to create a new user instance when valid data is submitted to the serializer
    def create(self, validated_data):
        """
        This method is called to create a new user instance when valid data is submitted.
        Self-registered accounts are always voters.
        """
        user = User.objects.create_user(
            username = validated_data['username'],
            email = validated_data.get('email'),
            password = validated_data['password'],
            name = validated_data.get('name', ''),
            role = User.Role.VOTER,
        )
        # return the newly created user instance.
        logger.info(f"New user registered: {user.username}")
        return user


class ProfileSerializer(serializers.ModelSerializer):
    """
    The authenticated user's own profile snapshot.
    """
    registration_id_display = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = (
            'id', 'username', 'name', 'email', 'role', 'verified', 'status',
            'registration_id', 'registration_id_display', 'profile_image',
            'language', 'date_joined', 'last_login',
        )
        read_only_fields = (
            'id', 'username', 'role', 'verified', 'status', 'registration_id',
            'date_joined', 'last_login',
        )

    def get_registration_id_display(self, obj):
        if not obj.registration_id:
            return None
        return format_registration_id(obj.registration_id)

    def validate_email(self, value):
        qs = User.objects.filter(email__iexact=value)
        if self.instance:
            qs = qs.exclude(pk=self.instance.pk)
        if value and qs.exists():
            raise serializers.ValidationError("Email already in use")
        return value


class VoterSerializer(serializers.ModelSerializer):
    """
    Account row as shown in the administrator's voter management table.
    """
    votes_cast = serializers.IntegerField(source="votes.count", read_only=True)

    class Meta:
        model = User
        fields = (
            'id', 'username', 'name', 'email', 'role', 'verified', 'status',
            'registration_id', 'profile_image', 'date_joined', 'last_login',
            'votes_cast',
        )
        read_only_fields = fields


class RoleChangeSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.Role.choices)

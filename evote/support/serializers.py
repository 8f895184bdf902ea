from rest_framework import serializers

from .models import SupportMessage


class SupportMessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = SupportMessage
        fields = [
            "id",
            "sender",
            "sender_name",
            "receiver",
            "message",
            "is_from_admin",
            "read",
            "created_at",
        ]
        read_only_fields = fields


class ViewerMessageSerializer(serializers.Serializer):
    """
    A message with indicators relative to the person reading it.
    """

    message = SupportMessageSerializer()
    is_own = serializers.BooleanField()
    delivered = serializers.BooleanField()
    seen = serializers.BooleanField()

    def to_representation(self, instance):
        data = super().to_representation(instance)
        # flatten so clients get one object per message
        message = data.pop("message")
        message.update(data)
        return message


class SendMessageSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=5000, trim_whitespace=True)
    receiver_id = serializers.IntegerField(required=False, allow_null=True)


class ReplySerializer(serializers.Serializer):
    message = serializers.CharField(max_length=5000, trim_whitespace=True)


class SupportThreadSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    user_name = serializers.CharField()
    last_message = serializers.CharField(source="last_message_text")
    last_message_time = serializers.DateTimeField(allow_null=True)
    unread_count = serializers.IntegerField()


class SupportThreadDetailSerializer(SupportThreadSerializer):
    messages = SupportMessageSerializer(many=True)

import math

from rest_framework import serializers

from music.store import THEME_MODES


class OptionalTextField(serializers.CharField):
    """Trimmed text that may be blank, null or missing."""

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_blank', True)
        kwargs.setdefault('allow_null', True)
        super().__init__(**kwargs)


class BlankAsAbsentMixin:
    """Blank optional fields come out as None, so they are never sent empty."""

    def validate(self, attrs):
        attrs = super().validate(attrs)
        for field_name, field in self.fields.items():
            if isinstance(field, OptionalTextField):
                attrs[field_name] = attrs.get(field_name) or None
        return attrs


class AuthSessionRequestSerializer(BlankAsAbsentMixin, serializers.Serializer):
    """Body of POST /api/auth/session/."""
    token = OptionalTextField(max_length=128)


class NowPlayingRequestSerializer(BlankAsAbsentMixin, serializers.Serializer):
    """Body of POST /api/now-playing/."""
    artist = serializers.CharField(max_length=1024)
    track = serializers.CharField(max_length=1024)
    album = OptionalTextField(max_length=1024)
    duration = OptionalTextField(max_length=16)
    sessionKey = OptionalTextField(max_length=128)


class ScrobbleRequestSerializer(NowPlayingRequestSerializer):
    """
    Body of POST /api/scrobble/.

    The timestamp is Unix seconds; fractions are truncated and the range is
    left for Last.fm to judge. A missing or null timestamp means "now";
    a value that is not a number is rejected with 400.
    """
    timestamp = serializers.FloatField(required=False, allow_null=True)
    trackNumber = OptionalTextField(max_length=16)

    def validate_timestamp(self, value):
        if value is None:
            return None
        if not math.isfinite(value):
            raise serializers.ValidationError("Timestamp must be a finite number.")
        return int(value)


class HistoryEntrySerializer(serializers.Serializer):
    id = serializers.CharField()
    type = serializers.CharField()
    artist = serializers.CharField()
    track = serializers.CharField()
    album = serializers.CharField(allow_null=True)
    timestamp = serializers.IntegerField()
    createdAt = serializers.IntegerField(source='created_at')


class ThemeSerializer(serializers.Serializer):
    seedColor = serializers.CharField(source='seed_color', required=False, max_length=16)
    mode = serializers.ChoiceField(choices=THEME_MODES, required=False)

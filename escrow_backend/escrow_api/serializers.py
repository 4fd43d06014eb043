from rest_framework import serializers

from .constants.constants import MAX_HISTORY_LIMIT
from .errors.error_handling import InvalidRequestError


class FetchRequestSerializer(serializers.Serializer):
    request_seq = serializers.IntegerField(required=False, min_value=0, allow_null=True)


class EscrowRequestSerializer(FetchRequestSerializer):
    is_mobile = serializers.BooleanField(required=False, default=False)


class HistoryRequestSerializer(FetchRequestSerializer):
    cursor = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    # Falls back to HISTORY_PAGE_SIZE in the views
    limit = serializers.IntegerField(required=False, min_value=1, max_value=MAX_HISTORY_LIMIT, allow_null=True,
                                     default=None)
    start_ledger = serializers.IntegerField(required=False, min_value=1, allow_null=True, default=None)


class NetworkSelectionSerializer(serializers.Serializer):
    network = serializers.CharField()


def validate_request_params(serializer_class, data):
    """Validate request parameters and return the cleaned values, raising InvalidRequestError on the first error."""
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        field_name, errors = next(iter(serializer.errors.items()))
        raise InvalidRequestError(f"Invalid parameter '{field_name}': {errors[0]}")
    return serializer.validated_data

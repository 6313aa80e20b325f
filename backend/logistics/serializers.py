from rest_framework import serializers


class EnumValueField(serializers.ReadOnlyField):
    """Renders str enums as their plain value ("IN_PROGRESS", not "TripStatus.IN_PROGRESS")."""

    def to_representation(self, value):
        return getattr(value, 'value', value)


class LocationUpdateSerializer(serializers.Serializer):
    """
    Body of POST /rider-location/.
    Coordinates are taken as sent: no range check on lat/lng.
    """
    tripId = serializers.CharField()
    lat = serializers.FloatField()
    lng = serializers.FloatField()
    heading = serializers.FloatField(required=False, allow_null=True)
    speed = serializers.FloatField(required=False, allow_null=True)


class DeliverOrderSerializer(serializers.Serializer):
    """
    Body of PATCH /rider-location/trips/<tripId>/deliver/<orderId>/.
    collectedAmount is the cash taken for a COD order.
    """
    collectedAmount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    codNote = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CustomerContactSerializer(serializers.Serializer):
    name = serializers.CharField(source='customer_name', allow_null=True)
    phone = serializers.CharField(source='customer_phone', allow_null=True)


class TripOrderSerializer(serializers.Serializer):
    id = serializers.CharField()
    status = EnumValueField()
    deliverySequence = serializers.IntegerField(source='delivery_sequence', allow_null=True)
    deliveryAddress = serializers.CharField(source='delivery_address')
    deliveryLat = serializers.FloatField(source='delivery_lat', allow_null=True)
    deliveryLng = serializers.FloatField(source='delivery_lng', allow_null=True)
    # what to collect at the door for COD orders
    totalAmount = serializers.DecimalField(source='total_amount', max_digits=10, decimal_places=2, allow_null=True)
    paymentMethod = EnumValueField(source='payment_method')
    customer = CustomerContactSerializer(source='*')


class StoreSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    latitude = serializers.FloatField(source='lat', allow_null=True)
    longitude = serializers.FloatField(source='lng', allow_null=True)
    address = serializers.CharField()


class TripSerializer(serializers.Serializer):
    id = serializers.CharField()
    riderId = serializers.CharField(source='rider_id')
    storeId = serializers.CharField(source='store_id')
    store = StoreSerializer(allow_null=True)
    status = EnumValueField()
    createdAt = serializers.DateTimeField(source='created_at')
    startedAt = serializers.DateTimeField(source='started_at', allow_null=True)
    completedAt = serializers.DateTimeField(source='completed_at', allow_null=True)
    orders = TripOrderSerializer(many=True)

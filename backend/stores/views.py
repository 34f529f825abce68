from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from backend.core.utils import create_audit_log, get_request_store
from .serializers import StoreSerializer


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def store_current(request):
    """Retrieve or update the settings of the current user's store"""
    store = get_request_store(request)
    if not store:
        return Response({'error': 'Store not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(StoreSerializer(store).data)

    serializer = StoreSerializer(store, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        create_audit_log(
            request=request,
            action='update',
            model_name='Store',
            object_id=store.id,
            object_name=store.name,
            store=store,
            changes={key: str(value) for key, value in serializer.validated_data.items()},
        )
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

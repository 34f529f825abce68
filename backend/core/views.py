from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed
from django.contrib.auth import get_user_model
from .models import AuditLog
from .serializers import UserSerializer, AuditLogSerializer
from .utils import get_request_store

User = get_user_model()


class StoreTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        # Tenant id travels with the token so clients can scope requests
        token['store_id'] = user.store_id
        return token


class StoreTokenObtainPairView(TokenObtainPairView):
    serializer_class = StoreTokenObtainPairSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user with tenant info"""
    user_data = UserSerializer(request.user).data
    store = get_request_store(request)
    user_data['store'] = {
        'id': store.id,
        'name': store.name,
        'slug': store.slug,
    } if store else None
    return Response(user_data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_list(request):
    """List the active users (sellers) of the current store"""
    store = get_request_store(request)
    if not store:
        return Response([])
    users = User.objects.filter(store=store, is_active=True).order_by('first_name', 'username')
    serializer = UserSerializer(users, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs for the current store"""
    store = get_request_store(request)
    queryset = AuditLog.objects.select_related('user').filter(store=store)
    action = request.query_params.get('action', None)
    if action:
        queryset = queryset.filter(action=action)
    limit = int(request.query_params.get('limit', 50))
    serializer = AuditLogSerializer(queryset[:limit], many=True)
    return Response(serializer.data)

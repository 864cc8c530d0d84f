import logging

from rest_framework import generics, status, permissions, filters
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.exceptions import ValidationError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView
from django.db import connection
from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiExample

from .models import CustomUser
from .serializers import UserSerializer, LoginSerializer, StaffUserSerializer
from .permissions import IsAdminRole, get_role_permissions

logger = logging.getLogger(__name__)


# =============== AUTHENTICATION VIEWS ===============

class CustomTokenObtainPairView(TokenObtainPairView):
    """
    JWT login for staff accounts.

    Returns the token pair together with the user's role and the
    permissions that role grants.
    """
    serializer_class = LoginSerializer

    @extend_schema(
        summary="Staff Login with JWT Token",
        description="Authenticate a staff member with email and password",
        request=LoginSerializer,
        responses={
            200: {
                'type': 'object',
                'properties': {
                    'refresh': {'type': 'string', 'description': 'JWT refresh token'},
                    'access': {'type': 'string', 'description': 'JWT access token'},
                    'user': {'type': 'object', 'description': 'User information'},
                    'role': {'type': 'string', 'description': 'Staff role'},
                    'permissions': {'type': 'array', 'items': {'type': 'string'}},
                }
            },
            400: {'description': 'Invalid credentials or no staff profile'},
        },
        examples=[
            OpenApiExample(
                'Cashier Login',
                value={
                    "email": "cashier@cafe.com",
                    "password": "SecurePassword123!"
                }
            )
        ]
    )
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.validated_data['user']
        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])

        role = 'admin' if user.is_superuser and user.role is None else user.role
        refresh = RefreshToken.for_user(user)
        refresh['role'] = role

        logger.info(f"Staff login: {user.email} ({role})")

        return Response({
            'refresh': str(refresh),
            'access': str(refresh.access_token),
            'user': UserSerializer(user).data,
            'role': role,
            'permissions': get_role_permissions(role),
        }, status=status.HTTP_200_OK)


# =============== USER MANAGEMENT VIEWS ===============

class StaffUserListCreateView(generics.ListCreateAPIView):
    """
    List and create staff accounts. Admin only.
    """
    serializer_class = StaffUserSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminRole]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['email', 'first_name', 'last_name', 'staff_profile__display_name']
    ordering_fields = ['email', 'date_joined']
    ordering = ['email']

    def get_queryset(self):
        queryset = CustomUser.objects.filter(staff_profile__isnull=False).select_related('staff_profile')
        role = self.request.query_params.get('role')
        if role:
            queryset = queryset.filter(staff_profile__role=role)
        return queryset

    @extend_schema(
        summary="Create Staff User",
        description="Create a login account together with its staff role",
        request=StaffUserSerializer,
        examples=[
            OpenApiExample(
                'Create Kitchen User',
                value={
                    "email": "kitchen@cafe.com",
                    "password": "SecurePassword123!",
                    "first_name": "Kitchen",
                    "last_name": "Staff",
                    "role": "kitchen"
                }
            )
        ]
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)

    def perform_create(self, serializer):
        user = serializer.save()
        logger.info(f"Staff user {user.email} created by {self.request.user.email}")


class StaffUserDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    Retrieve, update or delete a staff account. Admin only.
    """
    serializer_class = StaffUserSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminRole]
    lookup_field = 'id'
    lookup_url_kwarg = 'user_id'

    def get_queryset(self):
        return CustomUser.objects.select_related('staff_profile')

    def perform_destroy(self, instance):
        if instance.pk == self.request.user.pk:
            raise ValidationError('You cannot delete your own account')
        logger.info(f"Staff user {instance.email} deleted by {self.request.user.email}")
        instance.delete()


# =============== PROFILE ===============

class MyProfileView(generics.RetrieveUpdateAPIView):
    """
    Get and update current user's profile information.
    """
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(summary="Get My Profile")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_object(self):
        return self.request.user

    def perform_update(self, serializer):
        # Email is the login identifier
        serializer.validated_data.pop('email', None)
        serializer.validated_data.pop('is_active', None)
        serializer.save()


# =============== SYSTEM HEALTH ===============

@extend_schema(
    summary="System Health Check",
    description="Check system health and database connectivity",
    responses={
        200: {
            'type': 'object',
            'properties': {
                'status': {'type': 'string'},
                'timestamp': {'type': 'string'},
                'database': {'type': 'string'},
            }
        }
    }
)
@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def health_check(request):
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return Response({
            'status': 'unhealthy',
            'timestamp': timezone.now().isoformat(),
            'database': 'disconnected',
        }, status=status.HTTP_503_SERVICE_UNAVAILABLE)

    return Response({
        'status': 'healthy',
        'timestamp': timezone.now().isoformat(),
        'database': 'connected',
    })

from rest_framework import serializers
from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password
from django.db import transaction

from .models import CustomUser, StaffProfile
from .permissions import get_role_permissions


class UserSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password], required=False)
    confirm_password = serializers.CharField(write_only=True, required=False)
    full_name = serializers.SerializerMethodField(read_only=True)
    role = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = CustomUser
        fields = [
            'id', 'email', 'first_name', 'last_name', 'full_name', 'phone',
            'role', 'password', 'confirm_password', 'is_active', 'last_login'
        ]
        extra_kwargs = {
            'last_login': {'read_only': True},
        }

    def get_full_name(self, obj):
        return f"{obj.first_name} {obj.last_name}".strip()

    def get_role(self, obj):
        return obj.role

    def validate(self, attrs):
        if 'password' in attrs and 'confirm_password' in attrs:
            if attrs['password'] != attrs['confirm_password']:
                raise serializers.ValidationError("Passwords don't match")
        return attrs

    def update(self, instance, validated_data):
        validated_data.pop('confirm_password', None)
        password = validated_data.pop('password', None)

        for attr, value in validated_data.items():
            setattr(instance, attr, value)

        if password:
            instance.set_password(password)

        instance.save()
        return instance


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()

    def validate(self, attrs):
        email = attrs.get('email')
        password = attrs.get('password')

        user = authenticate(username=email, password=password)
        if not user:
            raise serializers.ValidationError('Invalid email or password')

        if not user.is_active:
            raise serializers.ValidationError('User account is disabled')

        if not user.is_superuser and user.role is None:
            raise serializers.ValidationError('No active staff profile for this account')

        attrs['user'] = user
        return attrs


class StaffUserSerializer(serializers.ModelSerializer):
    """Staff account with its role, used by the user management endpoints"""
    role = serializers.ChoiceField(choices=StaffProfile.ROLES, source='staff_profile.role')
    display_name = serializers.CharField(source='staff_profile.display_name', required=False, allow_blank=True)
    profile_active = serializers.BooleanField(source='staff_profile.is_active', required=False)
    permissions = serializers.SerializerMethodField(read_only=True)
    password = serializers.CharField(write_only=True, required=False, validators=[validate_password])

    class Meta:
        model = CustomUser
        fields = [
            'id', 'email', 'first_name', 'last_name', 'phone', 'role',
            'display_name', 'profile_active', 'permissions', 'password',
            'is_active', 'date_joined'
        ]
        read_only_fields = ['id', 'date_joined']

    def get_permissions(self, obj):
        return get_role_permissions(obj.role)

    def validate(self, attrs):
        if self.instance is None and not attrs.get('password'):
            raise serializers.ValidationError({'password': 'Password is required for new users'})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        profile_data = validated_data.pop('staff_profile', {})
        password = validated_data.pop('password')
        user = CustomUser.objects.create_user(password=password, **validated_data)
        StaffProfile.objects.create(user=user, **profile_data)
        return user

    @transaction.atomic
    def update(self, instance, validated_data):
        profile_data = validated_data.pop('staff_profile', {})
        password = validated_data.pop('password', None)

        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        instance.save()

        if profile_data:
            profile = getattr(instance, 'staff_profile', None) or StaffProfile(user=instance)
            for attr, value in profile_data.items():
                setattr(profile, attr, value)
            profile.save()

        return instance

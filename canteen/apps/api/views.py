# Views for api app

from datetime import datetime, timedelta

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response

from apps.core.display import build_display
from apps.core.ledger import apply_payment, compute_meal_balance, meal_log_stats, recent_meals
from apps.core.models import MealLog, Student
from apps.core.services import redeem_qr
from .permissions import IsAdminStaff, IsStaffUser, IsStudentUser
from .serializers import (
    MealLogSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
    QRDisplaySerializer,
    ScanRequestSerializer,
    ScanResultSerializer,
    StudentSnapshotSerializer,
)


@api_view(['POST'])
@permission_classes([IsStaffUser])
def scanner_scan(request):
    """Redeem a scanned QR code for the meal it was issued for"""
    serializer = ScanRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {'error': 'Invalid request data', 'details': serializer.errors},
            status=status.HTTP_400_BAD_REQUEST
        )

    result = redeem_qr(serializer.validated_data['qr_data'], staff=request.user.staff)

    http_status = status.HTTP_200_OK
    if result.result == 'ERROR':
        http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    return Response(ScanResultSerializer(result).data, status=http_status)


@api_view(['GET'])
@permission_classes([IsStaffUser])
def student_snapshot(request, student_id):
    """Get student snapshot for staff"""
    student = get_object_or_404(Student, id=student_id)
    return Response(StudentSnapshotSerializer(student).data)


@api_view(['GET'])
@permission_classes([IsStudentUser])
def student_active_qr(request):
    """Current meal QR for the logged-in student; clients poll this"""
    now = timezone.now()
    student = request.user.student
    display = build_display(student, now)

    data = QRDisplaySerializer(display, context={'now': now}).data
    data['meal_balance'] = compute_meal_balance(student)

    http_status = status.HTTP_200_OK
    if display.status == 'preparing':
        data['message'] = 'QR code is being prepared, try again shortly'
        http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    return Response(data, status=http_status)


@api_view(['GET'])
@permission_classes([IsStudentUser])
def student_meal_history(request):
    """Balance and most recent meals for the logged-in student"""
    student = request.user.student
    return Response({
        'meal_balance': compute_meal_balance(student),
        'meals': MealLogSerializer(recent_meals(student), many=True).data
    })


@api_view(['GET'])
@permission_classes([IsStaffUser])
def meal_logs(request):
    """Meals served on one day (default today), newest first"""
    date_param = request.query_params.get('date')
    if date_param:
        try:
            day = datetime.strptime(date_param, '%Y-%m-%d').date()
        except ValueError:
            return Response(
                {'error': 'date must be YYYY-MM-DD'},
                status=status.HTTP_400_BAD_REQUEST
            )
    else:
        day = timezone.localdate()

    day_start = timezone.make_aware(datetime.combine(day, datetime.min.time()))
    day_end = day_start + timedelta(days=1)

    logs = MealLog.objects.select_related('student', 'staff').filter(
        served_at__gte=day_start,
        served_at__lt=day_end
    ).order_by('-served_at')

    paginator = PageNumberPagination()
    page = paginator.paginate_queryset(logs, request)
    response = paginator.get_paginated_response(MealLogSerializer(page, many=True).data)
    response.data['date'] = day.isoformat()
    response.data['stats'] = meal_log_stats(logs)
    return response


@api_view(['POST'])
@permission_classes([IsAdminStaff])
def record_payment(request):
    """Record a payment and credit the student's meals"""
    serializer = PaymentCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {'error': 'Invalid request data', 'details': serializer.errors},
            status=status.HTTP_400_BAD_REQUEST
        )

    student = serializer.validated_data['student']
    payment = apply_payment(
        student,
        serializer.validated_data['amount'],
        serializer.validated_data['meals_added'],
        recorded_by=request.user.staff
    )

    return Response({
        'payment': PaymentSerializer(payment).data,
        'student_snapshot': StudentSnapshotSerializer(student).data
    }, status=status.HTTP_201_CREATED)

from rest_framework import viewsets, filters, status
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django_filters.rest_framework import DjangoFilterBackend
from django.http import HttpResponse
from .models import Examination, ExamResult
from .exceptions import ExamError
from .services import ExamService
from .transcripts import write_class_sheet_csv
from . import serializers as s


def error_response(exc):
    return Response(exc.as_dict(), status=exc.status_code)


def int_param(request, name, required=False, default=None):
    """Read an integer query parameter, answering 400 when it is malformed"""
    raw = request.query_params.get(name)
    if raw in (None, ''):
        if required and default is None:
            raise ValidationError({name: 'This parameter is required.'})
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError({name: 'Must be an integer.'})


def school_param(request):
    """``school`` query parameter, falling back to the tenant middleware's school"""
    current = getattr(request, 'current_school', None)
    return int_param(request, 'school', required=True, default=current.pk if current else None)


class ExaminationViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Examination.objects.select_related('school', 'session', 'classroom', 'section', 'subject').all()
    serializer_class = s.ExaminationSerializer
    permission_classes = [AllowAny]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['school', 'session', 'classroom', 'section', 'subject', 'exam_type', 'status']
    search_fields = ['name', 'exam_code']
    lookup_value_regex = r"\d+"

    service_class = ExamService

    def get_service(self):
        return self.service_class()

    def _run(self, serializer_class, operation, response_status=status.HTTP_200_OK):
        """Validate the payload, call the service and map domain errors to HTTP"""
        serializer = serializer_class(data=self.request.data)
        serializer.is_valid(raise_exception=True)
        try:
            payload = operation(self.get_service(), serializer.validated_data)
        except ExamError as exc:
            return error_response(exc)
        return Response(payload, status=response_status)

    def _exam_response(self, record):
        exam = Examination.objects.select_related('classroom', 'section', 'subject', 'session').get(pk=record.id)
        return s.ExaminationSerializer(exam).data

    def create(self, request, *args, **kwargs):
        def operation(service, data):
            record = service.create_exam(
                exam_code=data['exam_code'],
                school_id=data['school'].pk,
                session_id=data['session'].pk,
                name=data['name'],
                subject_id=data['subject'].pk,
                class_id=data['classroom'].pk,
                section_id=data['section'].pk if data.get('section') else None,
                exam_type=data['exam_type'],
                start=data['start_at'],
                end=data['end_at'],
                duration_minutes=data['duration_minutes'],
                full_marks=data['full_marks'],
                pass_marks=data['pass_marks'],
                grading_scale=data.get('grading_scale'),
                bands=data.get('grade_bands'),
                created_by=request.user.pk if request.user.is_authenticated else None,
            )
            return self._exam_response(record)
        return self._run(s.ExamCreateSerializer, operation, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def register(self, request, pk=None):
        """Register a student as a candidate"""
        def operation(service, data):
            candidate = service.register_candidate(int(pk), data['student'].pk, data['roll_number'])
            return s.CandidateSerializer(candidate).data
        return self._run(s.RegisterCandidateSerializer, operation, status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def attendance(self, request, pk=None):
        def operation(service, data):
            candidate = service.set_attendance(int(pk), data['student'], data['attendance'])
            return s.CandidateSerializer(candidate).data
        return self._run(s.AttendanceSerializer, operation)

    @action(detail=True, methods=['post'], url_path='status')
    def change_status(self, request, pk=None):
        def operation(service, data):
            return self._exam_response(service.change_status(int(pk), data['status']))
        return self._run(s.StatusSerializer, operation)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        """Create or replace one student's result"""
        def operation(service, data):
            result = service.submit_result(
                int(pk), data['student'], data['marks_obtained'],
                submitted_by=request.user.pk if request.user.is_authenticated else None,
                remarks=data['remarks'],
            )
            return s.ResultSerializer(result).data
        return self._run(s.SubmitResultSerializer, operation)

    @action(detail=True, methods=['post'])
    def bulk_submit(self, request, pk=None):
        """Create or update results in bulk for an examination"""
        def operation(service, data):
            entries = [
                {'student_id': item['student'], 'marks_obtained': item['marks_obtained'], 'remarks': item['remarks']}
                for item in data['results']
            ]
            saved, errors = service.bulk_submit_results(
                int(pk), entries,
                submitted_by=request.user.pk if request.user.is_authenticated else None,
            )
            return {
                'message': 'Bulk result submission completed',
                'saved': len(saved),
                'errors': errors,
            }
        return self._run(s.BulkSubmitSerializer, operation)

    @action(detail=True, methods=['post'])
    def moderate(self, request, pk=None):
        def operation(service, data):
            result = service.moderate_result(
                int(pk), data['student'], data['marks_obtained'],
                moderated_by=request.user.pk if request.user.is_authenticated else None,
                reason=data['reason'],
            )
            return s.ResultSerializer(result).data
        return self._run(s.ModerateResultSerializer, operation)

    @action(detail=True, methods=['post'])
    def verify(self, request, pk=None):
        def operation(service, data):
            result = service.verify_result(
                int(pk), data['student'],
                verified_by=request.user.pk if request.user.is_authenticated else None,
            )
            return s.ResultSerializer(result).data
        return self._run(s.VerifyResultSerializer, operation)

    @action(detail=True, methods=['post'])
    def publish(self, request, pk=None):
        def operation(service, data):
            record = service.publish_exam(
                int(pk),
                published_by=request.user.pk if request.user.is_authenticated else None,
                allow_early=data['allow_early'],
            )
            return self._exam_response(record)
        return self._run(s.PublishSerializer, operation)

    @action(detail=True, methods=['get'])
    def statistics(self, request, pk=None):
        try:
            stats = self.get_service().get_statistics(int(pk))
        except ExamError as exc:
            return error_response(exc)
        return Response(stats.as_dict())

    @action(detail=True, methods=['post'])
    def recompute(self, request, pk=None):
        try:
            stats = self.get_service().recompute_statistics(int(pk))
        except ExamError as exc:
            return error_response(exc)
        return Response(stats.as_dict())

    @action(detail=True, methods=['get'])
    def ranking(self, request, pk=None):
        try:
            ranked = self.get_service().ranking(int(pk))
        except ExamError as exc:
            return error_response(exc)
        return Response([
            {'rank': rank, **s.ResultSerializer(result).data}
            for rank, result in ranked
        ])


class ExamResultViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = ExamResult.objects.select_related('examination', 'student__user').all()
    serializer_class = s.ExamResultModelSerializer
    permission_classes = [AllowAny]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['examination', 'student', 'grade', 'verified', 'moderated']
    search_fields = ['student__user__first_name', 'student__user__last_name', 'student__roll_number']


class TranscriptViewSet(viewsets.ViewSet):
    """Cross-exam reports: student transcripts and class result sheets"""
    permission_classes = [AllowAny]

    service_class = ExamService

    @action(detail=False, methods=['get'])
    def student(self, request):
        """All results of one student, newest exam first"""
        rows = self.service_class().student_transcript(
            school_param(request),
            int_param(request, 'student', required=True),
            session_id=int_param(request, 'session'),
            exam_type=request.query_params.get('exam_type') or None,
        )
        return Response(rows)

    @action(detail=False, methods=['get'], url_path='student-gpa')
    def student_gpa(self, request):
        summary = self.service_class().student_gpa(
            school_param(request),
            int_param(request, 'student', required=True),
            session_id=int_param(request, 'session'),
        )
        return Response(summary)

    @action(detail=False, methods=['get'], url_path='class-sheet')
    def class_sheet(self, request):
        rows = self.service_class().class_result_sheet(
            school_param(request),
            int_param(request, 'classroom', required=True),
            section_id=int_param(request, 'section'),
            exam_id=int_param(request, 'examination'),
        )
        if request.query_params.get('export') == 'csv':
            response = HttpResponse(content_type='text/csv')
            response['Content-Disposition'] = 'attachment; filename="class_result_sheet.csv"'
            write_class_sheet_csv(rows, response)
            return response
        return Response(rows)

    @action(detail=False, methods=['get'])
    def merit(self, request):
        """Per-student rollup of a class, ranked by GPA then percentage"""
        merit = self.service_class().class_merit_list(
            school_param(request),
            int_param(request, 'classroom', required=True),
            session_id=int_param(request, 'session'),
            exam_type=request.query_params.get('exam_type') or None,
            section_id=int_param(request, 'section'),
        )
        return Response(merit)

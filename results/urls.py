from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ExaminationViewSet, ExamResultViewSet, TranscriptViewSet

router = DefaultRouter()
router.register('examinations', ExaminationViewSet)
router.register('results', ExamResultViewSet)
router.register('transcripts', TranscriptViewSet, basename='transcripts')

urlpatterns = [
    path('', include(router.urls)),
]

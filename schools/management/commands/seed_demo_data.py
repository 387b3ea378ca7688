from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth import get_user_model
from django.utils import timezone
from random import randint, choice
from datetime import timedelta, date

from schools.models import School
from academics.models import AcademicSession, ClassRoom, Section, Subject, StudentProfile
from results import domain
from results.exceptions import ExamError
from results.models import Examination
from results.services import ExamService

User = get_user_model()


class Command(BaseCommand):
    help = "Seed demo data for a given school: session, classrooms, sections, subjects, students and graded exams"

    def add_arguments(self, parser):
        parser.add_argument('--school-id', type=int, help='Existing School ID to seed data for')
        parser.add_argument('--create-school', action='store_true', help='Create a new demo school if school-id not provided')
        parser.add_argument('--school-name', type=str, default='Demo School', help='Name for the demo school (if creating)')
        parser.add_argument('--students', type=int, default=20, help='Number of students to create')
        parser.add_argument('--classes', type=int, default=3, help='Number of classrooms to create')
        parser.add_argument('--sections-per-class', type=int, default=2, help='Number of sections per classroom')
        parser.add_argument('--subjects', type=int, default=4, help='Number of subjects to create')
        parser.add_argument('--exam-type', type=str, default='midterm', choices=[value for value, _ in domain.EXAM_TYPES])
        parser.add_argument('--publish', action='store_true', help='Complete and publish the seeded exams')

    def handle(self, *args, **options):
        school = self.resolve_school(options)

        today = date.today()
        session, _ = AcademicSession.objects.get_or_create(
            school=school, name=f"{today.year}-{today.year + 1}",
            defaults={'start_date': date(today.year, 1, 1), 'end_date': date(today.year, 12, 31), 'is_current': True},
        )

        # Create classrooms
        classrooms = []
        for i in range(1, options['classes'] + 1):
            cls, _ = ClassRoom.objects.get_or_create(school=school, name=f"Class {i}")
            classrooms.append(cls)
        self.stdout.write(self.style.SUCCESS(f"Classrooms: {len(classrooms)}"))

        # Create sections per classroom (A, B, C ...)
        section_names = [chr(ord('A') + i) for i in range(options['sections_per_class'])]
        for cls in classrooms:
            for sname in section_names:
                Section.objects.get_or_create(classroom=cls, name=sname)

        subjects = []
        for i in range(1, options['subjects'] + 1):
            sub, _ = Subject.objects.get_or_create(school=school, name=f"Subject {i}", defaults={'code': f"SUB{i:02d}"})
            subjects.append(sub)
        self.stdout.write(self.style.SUCCESS(f"Subjects: {len(subjects)}"))

        students = []
        for i in range(1, options['students'] + 1):
            username = f"student{i}_school{school.id}"
            user, _ = User.objects.get_or_create(username=username, defaults={"first_name": f"Student{i}", "last_name": "Demo"})
            cls = choice(classrooms)
            sec_list = list(cls.sections.all())
            sp, _ = StudentProfile.objects.get_or_create(user=user, defaults={
                "school": school,
                "classroom": cls,
                "section": choice(sec_list) if sec_list else None,
                "roll_number": str(i),
            })
            students.append(sp)
        self.stdout.write(self.style.SUCCESS(f"Students: {len(students)}"))

        service = ExamService()
        exams = 0
        results = 0
        start = timezone.now() - timedelta(days=7)
        for cls in classrooms:
            roster = [sp for sp in students if sp.classroom_id == cls.id]
            for sub in subjects:
                code = f"{options['exam_type'].upper()}-{school.id}-{session.id}-{cls.id}-{sub.id}"
                if Examination.objects.filter(exam_code=code).exists():
                    continue
                record = service.create_exam(
                    exam_code=code,
                    school_id=school.id,
                    session_id=session.id,
                    name=f"{dict(domain.EXAM_TYPES)[options['exam_type']]} {sub.name}",
                    subject_id=sub.id,
                    class_id=cls.id,
                    exam_type=options['exam_type'],
                    start=start,
                    end=start + timedelta(hours=3),
                    duration_minutes=180,
                    full_marks=100,
                    pass_marks=33,
                )
                exams += 1
                for sp in roster:
                    service.register_candidate(record.id, sp.id, sp.roll_number or '')
                service.change_status(record.id, domain.SCHEDULED)
                service.change_status(record.id, domain.IN_PROGRESS)
                entries = [{'student_id': sp.id, 'marks_obtained': randint(20, 100)} for sp in roster]
                if entries:
                    saved, _ = service.bulk_submit_results(record.id, entries)
                    results += len(saved)
                service.change_status(record.id, domain.COMPLETED)
                if options['publish']:
                    try:
                        service.publish_exam(record.id)
                    except ExamError as exc:
                        self.stdout.write(self.style.WARNING(f"{code}: {exc.message}"))
        self.stdout.write(self.style.SUCCESS(f"Exams: {exams}, results: {results}"))

        self.stdout.write(self.style.SUCCESS("Demo data seeding complete."))

    def resolve_school(self, options):
        school_id = options.get('school_id')
        if school_id:
            try:
                return School.objects.get(id=school_id)
            except School.DoesNotExist:
                if not options.get('create_school'):
                    raise CommandError(f"School with id={school_id} does not exist. Use --create-school to create it.")
                school = School.objects.create(id=school_id, name=options['school_name'])
        elif options.get('create_school'):
            school = School.objects.create(name=options['school_name'])
        else:
            raise CommandError("Provide --school-id or use --create-school to create a demo school.")
        self.stdout.write(self.style.WARNING(f"Created new School with id={school.id} name={school.name}"))
        return school

from django.core.management.base import BaseCommand

from centers.models import Country
from medical.models import NationalCalendar, Vaccine, VaccineSchedule


class Command(BaseCommand):
    help = 'Populates the database with reference countries, standard vaccines and their schedule'

    def add_arguments(self, parser):
        parser.add_argument('--country', default='Ecuador', help='Country the national calendar is attached to')

    def handle(self, *args, **options):
        # 1. Countries
        countries_data = [
            ("Ecuador", "Ecuadorian"),
            ("Colombia", "Colombian"),
            ("Peru", "Peruvian"),
            ("Venezuela", "Venezuelan"),
        ]
        for name, demonym in countries_data:
            _, created = Country.objects.get_or_create(name=name, defaults={'demonym': demonym})
            if created:
                self.stdout.write(self.style.SUCCESS(f'Created Country: {name}'))

        # 2. Vaccines
        # (name, manufacturer, type, required doses)
        vaccines_data = [
            ("BCG", "Serum Institute of India", "Live attenuated", 1),
            ("Hepatitis B", "GSK", "Recombinant", 1),
            ("Pentavalent", "Serum Institute of India", "Combined", 3),
            ("Oral Polio (bOPV)", "Sanofi", "Live attenuated", 3),
            ("Inactivated Polio (IPV)", "Sanofi", "Inactivated", 1),
            ("Rotavirus", "GSK", "Live attenuated", 2),
            ("Pneumococcal (PCV)", "Pfizer", "Conjugate", 3),
            ("MMR", "Merck", "Live attenuated", 2),
        ]

        vaccine_objs = {}
        for name, manufacturer, vaccine_type, doses in vaccines_data:
            vac, created = Vaccine.objects.update_or_create(
                name=name,
                defaults={
                    'manufacturer': manufacturer,
                    'vaccine_type': vaccine_type,
                    'required_doses': doses,
                }
            )
            vaccine_objs[name] = vac
            if created:
                self.stdout.write(self.style.SUCCESS(f'Created Vaccine: {name}'))
            else:
                self.stdout.write(f'Updated Vaccine: {name}')

        # 3. Schedule: (vaccine, dose number, age in months)
        schedule_data = [
            # At birth
            ("BCG", 1, 0),
            ("Hepatitis B", 1, 0),

            # 2 months
            ("Pentavalent", 1, 2),
            ("Oral Polio (bOPV)", 1, 2),
            ("Inactivated Polio (IPV)", 1, 2),
            ("Rotavirus", 1, 2),
            ("Pneumococcal (PCV)", 1, 2),

            # 4 months
            ("Pentavalent", 2, 4),
            ("Oral Polio (bOPV)", 2, 4),
            ("Rotavirus", 2, 4),
            ("Pneumococcal (PCV)", 2, 4),

            # 6 months
            ("Pentavalent", 3, 6),
            ("Oral Polio (bOPV)", 3, 6),
            ("Pneumococcal (PCV)", 3, 6),

            # 12 and 18 months
            ("MMR", 1, 12),
            ("MMR", 2, 18),
        ]

        country = Country.objects.filter(name=options['country']).first()
        if country is None:
            self.stdout.write(self.style.WARNING(f"Country {options['country']} not found, national calendar skipped"))

        for vaccine_name, dose, age in schedule_data:
            vac = vaccine_objs[vaccine_name]
            sched, created = VaccineSchedule.objects.get_or_create(
                vaccine=vac,
                dose_order=dose,
                defaults={'age_in_months': age}
            )
            if country is not None:
                NationalCalendar.objects.get_or_create(country=country, schedule=sched)
            if created:
                self.stdout.write(self.style.SUCCESS(f'Scheduled {vac.name} Dose {dose}'))
            else:
                self.stdout.write(f'Schedule exists: {vac.name} Dose {dose}')

        self.stdout.write(self.style.SUCCESS('Successfully populated reference data!'))

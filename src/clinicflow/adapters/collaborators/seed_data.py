"""
Starter records for the in-process collaborators.
"""

from datetime import date

from ...application.ports.services.inventory_service import InventoryItem
from ...application.ports.services.lab_catalog import LabTest
from ...domain.entities.patient import Patient


def default_patients():
    return [
        Patient(
            patient_id="P001",
            name="Wanjiku Kamau",
            phone="+254 712 345 678",
            last_visit=date(2023, 10, 15),
            history=["Malaria treatment (Aug 2023)", "Routine Checkup (Jan 2023)"],
        ),
        Patient(
            patient_id="P002",
            name="Juma Ochieng",
            phone="+254 722 987 654",
            last_visit=date(2023, 10, 20),
            history=["Fracture treatment (Sep 2023)"],
        ),
        Patient(
            patient_id="P003",
            name="Amina Mohamed",
            phone="+254 733 111 222",
            last_visit=date(2023, 10, 22),
            history=["Prenatal Visit 1 (Sep 2023)"],
        ),
    ]


def default_inventory():
    return [
        InventoryItem("I001", "Paracetamol 500mg", 1500, "Tablets", "Medicine", 5),
        InventoryItem("I002", "Amoxicillin 250mg", 400, "Tablets", "Medicine", 15),
        InventoryItem("I003", "Cotton Wool", 12, "Rolls", "Supply", 150),
        InventoryItem("I004", "Malaria Test Kit", 45, "Kits", "Lab", 200),
        InventoryItem("I005", "Cough Syrup", 8, "Bottles", "Medicine", 350),
    ]


def default_lab_tests():
    return [
        LabTest("T001", "Full Hemogram (CBC)", 800, "Hematology"),
        LabTest("T002", "Malaria Smear", 300, "Microbiology"),
        LabTest("T003", "Urinalysis", 400, "Microbiology"),
        LabTest("T004", "Random Blood Sugar", 200, "Biochemistry"),
        LabTest("T005", "Lipid Profile", 1500, "Biochemistry"),
        LabTest("T006", "X-Ray (Chest)", 1200, "Radiology"),
    ]

"""
Static billing reference data.

Plain tuples and dicts only; ``build_default_knowledge_base`` wraps them in
read-only views.
"""

GENERAL_TERMINOLOGY = {
    "OD": "Oculus Dexter - Right Eye",
    "OS": "Oculus Sinister - Left Eye",
    "OU": "Oculus Uterque - Both Eyes",
    "PCP": "Primary Care Physician",
    "HEDIS": "Healthcare Effectiveness Data and Information Set",
    "PIC": "Provider Interface Center",
    "NPI": "National Provider Identifier",
    "CPT": "Current Procedural Terminology",
    "ICD": "International Classification of Diseases",
    "ICD-10": "International Classification of Diseases, 10th Revision",
    "HCPCS": "Healthcare Common Procedure Coding System",
    "POS": "Place of Service",
    "EOB": "Explanation of Benefits",
    "ERA": "Electronic Remittance Advice",
    "EDI": "Electronic Data Interchange",
    "EHR": "Electronic Health Record",
    "HIPAA": "Health Insurance Portability and Accountability Act",
    "CMS": "Centers for Medicare & Medicaid Services",
    "RVU": "Relative Value Unit",
    "DOS": "Date of Service",
}

# code, system, description
CODE_TABLE = (
    # ICD-10-CM
    ("E11.9", "ICD-10", "Type 2 diabetes mellitus without complications"),
    ("E11.21", "ICD-10", "Type 2 diabetes mellitus with diabetic nephropathy"),
    ("E11.22", "ICD-10", "Type 2 diabetes mellitus with diabetic chronic kidney disease"),
    ("E78.5", "ICD-10", "Hyperlipidemia, unspecified"),
    ("H35.00", "ICD-10", "Unspecified background retinopathy"),
    ("H35.01", "ICD-10", "Mild nonproliferative diabetic retinopathy"),
    ("H35.02", "ICD-10", "Moderate nonproliferative diabetic retinopathy"),
    ("H35.03", "ICD-10", "Severe nonproliferative diabetic retinopathy"),
    ("H35.04", "ICD-10", "Proliferative diabetic retinopathy"),
    ("H40.9", "ICD-10", "Unspecified glaucoma"),
    ("H26.9", "ICD-10", "Unspecified cataract"),
    ("I10", "ICD-10", "Essential (primary) hypertension"),
    ("I11.9", "ICD-10", "Hypertensive heart disease without heart failure"),
    ("I25.10", "ICD-10", "Atherosclerotic heart disease of native coronary artery without angina pectoris"),
    ("I63.9", "ICD-10", "Cerebral infarction, unspecified"),
    ("N18.1", "ICD-10", "Chronic kidney disease, stage 1"),
    ("N18.2", "ICD-10", "Chronic kidney disease, stage 2 (mild)"),
    ("N18.3", "ICD-10", "Chronic kidney disease, stage 3 (moderate)"),
    ("N18.4", "ICD-10", "Chronic kidney disease, stage 4 (severe)"),
    ("N18.5", "ICD-10", "Chronic kidney disease, stage 5"),
    ("J44.9", "ICD-10", "Chronic obstructive pulmonary disease, unspecified"),
    ("J45.909", "ICD-10", "Unspecified asthma, uncomplicated"),
    ("K21.9", "ICD-10", "Gastro-esophageal reflux disease without esophagitis"),
    ("K25.9", "ICD-10", "Gastric ulcer, unspecified as acute or chronic, without hemorrhage or perforation"),
    ("G40.909", "ICD-10", "Epilepsy, unspecified, not intractable, without status epilepticus"),
    ("G43.909", "ICD-10", "Migraine, unspecified, not intractable, without status migrainosus"),
    ("M17.11", "ICD-10", "Unilateral primary osteoarthritis, right knee"),
    ("S72.001A", "ICD-10", "Fracture of unspecified part of neck of right femur, initial encounter for closed fracture"),
    ("Z79.4", "ICD-10", "Long term (current) use of insulin"),
    ("Z79.84", "ICD-10", "Long term (current) use of oral hypoglycemic drugs"),
    ("Z51.11", "ICD-10", "Encounter for antineoplastic chemotherapy"),
    # CPT
    ("92250", "CPT", "Fundus photography with interpretation and report"),
    ("92227", "CPT", "Imaging of retina for detection or monitoring of disease; with remote clinical staff review"),
    ("92228", "CPT", "Imaging of retina for detection or monitoring of disease; with remote physician review"),
    ("92229", "CPT", "Imaging of retina for detection or monitoring of disease; point-of-care automated analysis"),
    ("92285", "CPT", "External ocular photography with interpretation and report"),
    ("92310", "CPT", "Prescription of optical and physical characteristics of contact lens"),
    ("92015", "CPT", "Determination of refractive state"),
    ("99213", "CPT", "Office or other outpatient visit, established patient, low medical decision making"),
    ("99214", "CPT", "Office or other outpatient visit, established patient, moderate medical decision making"),
    ("99215", "CPT", "Office or other outpatient visit, established patient, high medical decision making"),
    ("93000", "CPT", "Electrocardiogram, routine ECG with at least 12 leads; with interpretation and report"),
    ("93010", "CPT", "Electrocardiogram, routine ECG with at least 12 leads; interpretation and report only"),
    ("94010", "CPT", "Spirometry"),
    ("94060", "CPT", "Bronchodilation responsiveness, spirometry pre- and post-bronchodilator"),
    ("43235", "CPT", "Esophagogastroduodenoscopy, diagnostic"),
    ("43239", "CPT", "Esophagogastroduodenoscopy with biopsy, single or multiple"),
    ("95816", "CPT", "Electroencephalogram, awake and drowsy"),
    ("95819", "CPT", "Electroencephalogram, awake and asleep"),
    ("20610", "CPT", "Arthrocentesis, aspiration and/or injection, major joint; without ultrasound guidance"),
    ("20611", "CPT", "Arthrocentesis, aspiration and/or injection, major joint; with ultrasound guidance"),
    ("80053", "CPT", "Comprehensive metabolic panel"),
    ("80061", "CPT", "Lipid panel"),
    ("83036", "CPT", "Hemoglobin; glycosylated (A1C)"),
    # HCPCS Level II
    ("A9270", "HCPCS", "Noncovered item or service"),
    ("G0008", "HCPCS", "Administration of influenza virus vaccine"),
    ("G0009", "HCPCS", "Administration of pneumococcal vaccine"),
    ("G0108", "HCPCS", "Diabetes outpatient self-management training services, individual"),
    ("G0109", "HCPCS", "Diabetes outpatient self-management training services, group session"),
    ("G0270", "HCPCS", "Medical nutrition therapy, reassessment and subsequent intervention"),
    ("G0402", "HCPCS", "Initial preventive physical examination"),
    ("G0438", "HCPCS", "Annual wellness visit, includes a personalized prevention plan of service, initial visit"),
    ("V2020", "HCPCS", "Frames, purchases"),
    ("V2100", "HCPCS", "Sphere, single vision, plano to plus or minus 4.00"),
    # Place of service
    ("02", "POS", "Telehealth provided other than in patient's home"),
    ("10", "POS", "Telehealth provided in patient's home"),
    ("11", "POS", "Office"),
    ("12", "POS", "Home"),
    ("19", "POS", "Off campus outpatient hospital"),
    ("20", "POS", "Urgent care facility"),
    ("21", "POS", "Inpatient hospital"),
    ("22", "POS", "On campus outpatient hospital"),
    ("23", "POS", "Emergency room - hospital"),
    ("31", "POS", "Skilled nursing facility"),
    ("81", "POS", "Independent laboratory"),
    # Modifiers
    ("25", "MODIFIER", "Significant, separately identifiable E/M service on the same day of a procedure"),
    ("26", "MODIFIER", "Professional component"),
    ("50", "MODIFIER", "Bilateral procedure"),
    ("59", "MODIFIER", "Distinct procedural service"),
    ("76", "MODIFIER", "Repeat procedure by same physician"),
    ("TC", "MODIFIER", "Technical component"),
    ("RT", "MODIFIER", "Right side"),
    ("LT", "MODIFIER", "Left side"),
    ("GA", "MODIFIER", "Waiver of liability statement issued as required by payer policy"),
    ("GY", "MODIFIER", "Item or service statutorily excluded or does not meet the definition of a benefit"),
)

SPECIALTIES = {
    "ophthalmology": {
        "name": "Ophthalmology",
        "description": "Medical specialty dealing with eye and vision care",
        "common_codes": ("92250", "92227", "92228", "92229", "92285", "92310", "92015",
                         "H35.00", "H35.01", "H35.02", "H35.03", "H35.04", "H40.9", "H26.9", "V2020", "V2100"),
        "terminology": {
            "VA": "Visual Acuity",
            "IOP": "Intraocular Pressure",
            "DVA": "Distance Visual Acuity",
            "NVA": "Near Visual Acuity",
            "CF": "Counting Fingers",
            "HM": "Hand Motion",
            "LP": "Light Perception",
            "NLP": "No Light Perception",
        },
        "procedures": ("Fundus Photography", "Retinal Imaging", "Visual Field Testing", "Tonometry",
                       "Slit Lamp Examination", "Optical Coherence Tomography"),
        "conditions": ("Diabetic Retinopathy", "Glaucoma", "Cataracts", "Macular Degeneration",
                       "Retinal Detachment"),
    },
    "cardiology": {
        "name": "Cardiology",
        "description": "Medical specialty dealing with heart and cardiovascular system",
        "common_codes": ("99213", "99214", "99215", "93000", "93010", "I10", "I11.9", "I25.10"),
        "terminology": {
            "EKG": "Electrocardiogram",
            "ECG": "Electrocardiogram",
            "CABG": "Coronary Artery Bypass Graft",
            "PCI": "Percutaneous Coronary Intervention",
            "CHF": "Congestive Heart Failure",
            "CAD": "Coronary Artery Disease",
            "HTN": "Hypertension",
            "AF": "Atrial Fibrillation",
        },
        "procedures": ("Echocardiogram", "Stress Test", "Cardiac Catheterization", "Holter Monitor"),
        "conditions": ("Coronary Artery Disease", "Heart Failure", "Hypertension", "Atrial Fibrillation"),
    },
    "endocrinology": {
        "name": "Endocrinology",
        "description": "Medical specialty dealing with hormones and metabolism",
        "common_codes": ("99213", "99214", "E11.9", "E11.21", "E11.22", "Z79.4", "Z79.84",
                         "E78.5", "83036", "G0108", "G0109"),
        "terminology": {
            "DM": "Diabetes Mellitus",
            "T1DM": "Type 1 Diabetes Mellitus",
            "T2DM": "Type 2 Diabetes Mellitus",
            "HbA1c": "Hemoglobin A1c",
            "DKA": "Diabetic Ketoacidosis",
            "TSH": "Thyroid Stimulating Hormone",
        },
        "procedures": ("Glucose Monitoring", "Insulin Administration", "Thyroid Function Tests"),
        "conditions": ("Type 1 Diabetes", "Type 2 Diabetes", "Hypothyroidism", "Hyperthyroidism"),
    },
    "nephrology": {
        "name": "Nephrology",
        "description": "Medical specialty dealing with kidney function and disease",
        "common_codes": ("99213", "99214", "E11.22", "N18.1", "N18.2", "N18.3", "N18.4", "N18.5", "80053"),
        "terminology": {
            "CKD": "Chronic Kidney Disease",
            "ESRD": "End-Stage Renal Disease",
            "GFR": "Glomerular Filtration Rate",
            "BUN": "Blood Urea Nitrogen",
        },
        "procedures": ("Dialysis", "Kidney Biopsy", "Renal Ultrasound"),
        "conditions": ("Chronic Kidney Disease", "Diabetic Nephropathy", "Acute Kidney Injury"),
    },
    "pulmonology": {
        "name": "Pulmonology",
        "description": "Medical specialty dealing with the respiratory system",
        "common_codes": ("99213", "99214", "J44.9", "J45.909", "94010", "94060"),
        "terminology": {
            "COPD": "Chronic Obstructive Pulmonary Disease",
            "PFT": "Pulmonary Function Test",
            "FEV1": "Forced Expiratory Volume in 1 second",
        },
        "procedures": ("Spirometry", "Bronchoscopy", "Sleep Study"),
        "conditions": ("Asthma", "COPD", "Pneumonia", "Sleep Apnea"),
    },
    "gastroenterology": {
        "name": "Gastroenterology",
        "description": "Medical specialty dealing with the digestive system",
        "common_codes": ("99213", "99214", "K21.9", "K25.9", "43235", "43239"),
        "terminology": {
            "GERD": "Gastroesophageal Reflux Disease",
            "EGD": "Esophagogastroduodenoscopy",
            "IBD": "Inflammatory Bowel Disease",
        },
        "procedures": ("Colonoscopy", "Upper Endoscopy", "ERCP"),
        "conditions": ("GERD", "Peptic Ulcer Disease", "Crohn's Disease", "Ulcerative Colitis"),
    },
    "neurology": {
        "name": "Neurology",
        "description": "Medical specialty dealing with the nervous system",
        "common_codes": ("99213", "99214", "G40.909", "G43.909", "I63.9", "95816", "95819"),
        "terminology": {
            "EEG": "Electroencephalogram",
            "EMG": "Electromyography",
            "TIA": "Transient Ischemic Attack",
            "MS": "Multiple Sclerosis",
        },
        "procedures": ("EEG", "EMG", "Lumbar Puncture", "Nerve Conduction Study"),
        "conditions": ("Epilepsy", "Migraine", "Stroke", "Multiple Sclerosis"),
    },
    "orthopedics": {
        "name": "Orthopedics",
        "description": "Medical specialty dealing with the musculoskeletal system",
        "common_codes": ("99213", "99214", "M17.11", "S72.001A", "20610", "20611"),
        "terminology": {
            "ORIF": "Open Reduction Internal Fixation",
            "ROM": "Range of Motion",
            "ACL": "Anterior Cruciate Ligament",
        },
        "procedures": ("Joint Injection", "Arthroscopy", "Fracture Care", "Joint Replacement"),
        "conditions": ("Osteoarthritis", "Fractures", "Rotator Cuff Tear", "Low Back Pain"),
    },
}

PROVIDERS = (
    {"npi": "1234567893", "name": "Dr. Sarah Johnson", "specialty": "Endocrinology",
     "address": "123 Medical Center Dr, Suite 100, Anytown, CA 90210", "phone": "(555) 123-4567"},
    {"npi": "1245319599", "name": "Dr. Michael Chen", "specialty": "Ophthalmology",
     "address": "456 Eye Care Blvd, Anytown, CA 90210", "phone": "(555) 987-6543"},
    {"npi": "9876543213", "name": "Dr. Emily Rodriguez", "specialty": "Family Practice",
     "address": "789 Health Way, Anytown, CA 90211", "phone": "(555) 555-0199"},
    {"npi": "1111111112", "name": "Dr. James Wilson", "specialty": "Cardiology",
     "address": "22 Heart Plaza, Anytown, CA 90212", "phone": "(555) 555-0142"},
)

FORM_GUIDANCE = {
    "PatientEligibilityForm": {
        "providerId": "Enter your 10-digit National Provider Identifier (NPI) number. This is required for all claims submissions.",
        "subscriberId": "Enter the patient's member ID as it appears on their insurance card. This is typically found on the front of the card.",
        "dependantSequence": "Enter the dependent sequence number. 00 = primary subscriber, 01 = spouse, 02+ = children in order of birth.",
        "lastName": "Enter the patient's legal last name exactly as it appears on their insurance card.",
        "firstName": "Enter the patient's legal first name exactly as it appears on their insurance card.",
        "dateOfBirth": "Enter the patient's date of birth in MM/DD/YYYY format.",
    },
    "ClaimsSubmissionForm": {
        "serviceDateFrom": "Enter the date when services began. This should be the first date of the service period.",
        "serviceDateTo": "Enter the date when services ended. For single-day services, this will be the same as the from date.",
        "diagnosisCodes": "Enter the primary diagnosis code first, followed by any secondary codes. Use the most specific code available.",
        "placeOfService": "Enter the two-digit place of service code, for example 11 for an office visit.",
        "odSphere": "Enter the sphere power for the right eye. Use negative values for myopia, positive for hyperopia.",
        "osSphere": "Enter the sphere power for the left eye. Use negative values for myopia, positive for hyperopia.",
        "odCylinder": "Enter the cylinder power for the right eye. This corrects astigmatism.",
        "osCylinder": "Enter the cylinder power for the left eye. This corrects astigmatism.",
        "odAxis": "Enter the axis for the right eye (0-180 degrees). This indicates the orientation of the cylinder.",
        "osAxis": "Enter the axis for the left eye (0-180 degrees). This indicates the orientation of the cylinder.",
    },
}

FORM_STEPS = {
    "PatientEligibilityForm": (
        "Provider information (NPI)",
        "Patient and subscriber details",
        "Review the eligibility response and save",
    ),
    "ClaimsSubmissionForm": (
        "Service dates and place of service",
        "Diagnosis codes",
        "Prescription details (sphere, cylinder, axis)",
        "Frames and lenses",
        "Review and submit the claim",
    ),
}

QUICK_SUGGESTIONS = {
    "PatientEligibilityForm": ("providerId", "subscriberId", "dependantSequence", "lastName", "firstName"),
    "ClaimsSubmissionForm": ("diagnosisCodes", "odSphere", "osSphere", "odCylinder", "osCylinder"),
}
DEFAULT_QUICK_SUGGESTIONS = ("Terminology", "Codes", "Form Help")

VOICE_COMMANDS = {
    "next step": "Navigate to the next form step",
    "previous step": "Navigate to the previous form step",
    "open mila": "Open the M.I.L.A. assistant",
    "search codes": "Search for medical codes",
    "help": "Get help with the current field",
    "save form": "Save current form data",
    "submit form": "Submit the current form",
    "clear field": "Clear the current field",
}

GESTURES = {
    "swipe left": "Go to the next form step",
    "swipe right": "Go back to the previous form step",
    "long press on a field": "Open help for that field",
    "double tap": "Open the assistant",
}

CONDITION_VOCABULARY = (
    "diabetes", "diabetic", "retinopathy", "cataract", "glaucoma", "macular degeneration",
    "hypertension", "nephropathy", "kidney disease", "heart failure", "coronary artery disease",
    "atrial fibrillation", "asthma", "copd", "gerd", "ulcer", "epilepsy", "migraine", "stroke",
    "osteoarthritis", "fracture", "hyperlipidemia", "obesity", "depression", "anxiety",
)

PROCEDURE_VOCABULARY = (
    "fundus photography", "retinal imaging", "visual field", "tonometry", "contact lens",
    "refraction", "office visit", "electrocardiogram", "echocardiogram", "stress test",
    "spirometry", "endoscopy", "colonoscopy", "electroencephalogram", "arthrocentesis",
    "joint injection", "metabolic panel", "lipid panel", "wellness visit", "vaccine",
)

# Plain-language definitions for conditions that are not abbreviations
CONDITION_DEFINITIONS = {
    "diabetes mellitus": "A group of metabolic diseases characterized by high blood sugar levels over a prolonged period.",
    "diabetes": "A group of metabolic diseases characterized by high blood sugar levels over a prolonged period.",
    "hypertension": "A long-term condition in which the blood pressure in the arteries is persistently elevated.",
    "retinopathy": "Damage to the retina, most often caused by diabetes or high blood pressure.",
    "nephropathy": "Damage to or disease of the kidney, commonly a complication of diabetes.",
    "hyperlipidemia": "Abnormally elevated levels of lipids or lipoproteins in the blood.",
    "glaucoma": "A group of eye conditions that damage the optic nerve, often linked to high eye pressure.",
    "cataract": "A clouding of the lens of the eye that leads to decreased vision.",
}

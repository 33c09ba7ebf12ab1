from registration.mutators import FieldMutator, get_path, normalize_money, set_path
from registration.roles import DOCTOR, LABORATORY, NURSE, PATIENT, PHARMACY


def test_phone_keeps_ten_digits_only():
    draft = FieldMutator(DOCTOR).apply(DOCTOR.new_draft(), "phone", "98-76 543a210")
    assert draft["phone"] == "9876543210"

    draft = FieldMutator(DOCTOR).apply(draft, "phone", "+91 98765 43210 99")
    assert draft["phone"] == "9198765432"


def test_money_keeps_first_decimal_point():
    assert normalize_money("12.34.56abc") == "12.3456"
    assert normalize_money("1,500") == "1500"
    assert normalize_money("") == ""

    draft = FieldMutator(NURSE).apply(NURSE.new_draft(), "fees", "12.34.56abc")
    assert draft["fees"] == "12.3456"


def test_input_draft_is_not_mutated():
    original = DOCTOR.new_draft()
    updated = FieldMutator(DOCTOR).apply(original, "clinicDetails.address.city", "Pune")

    assert original["clinicDetails"]["address"]["city"] == ""
    assert updated["clinicDetails"]["address"]["city"] == "Pune"
    assert updated["education"] is original["education"]


def test_nested_and_indexed_paths():
    mutator = FieldMutator(DOCTOR)
    draft = mutator.apply(DOCTOR.new_draft(), "education.0.degree", "MBBS")
    assert draft["education"] == [{"institution": "", "degree": "MBBS", "year": ""}]

    # out of range index leaves the draft alone
    assert mutator.apply(draft, "education.3.degree", "MD") == draft


def test_contact_person_phone_is_normalized():
    draft = FieldMutator(PHARMACY).apply(PHARMACY.new_draft(), "contactPerson.phone", "(022) 1234-5678")
    assert draft["contactPerson"]["phone"] == "0221234567"


def test_nurse_postal_code_six_digits():
    mutator = FieldMutator(NURSE)
    draft = mutator.apply(NURSE.new_draft(), "address.postalCode", "411 00 1234")
    assert draft["address"]["postalCode"] == "411001"

    draft = mutator.apply(draft, "postalCode", "560-034")
    assert draft["address"]["postalCode"] == "560034"


def test_other_roles_leave_postal_code_alone():
    draft = FieldMutator(PHARMACY).apply(PHARMACY.new_draft(), "address.postalCode", "SW1A 1AA")
    assert draft["address"]["postalCode"] == "SW1A 1AA"


def test_text_caps():
    lab = FieldMutator(LABORATORY)
    draft = lab.apply(LABORATORY.new_draft(), "labName", "x" * 150)
    assert len(draft["labName"]) == 100

    draft = lab.apply(draft, "licenseNumber", "  LIC-" + "9" * 60)
    assert draft["licenseNumber"].startswith("LIC-")
    assert len(draft["licenseNumber"]) == 50

    patient = FieldMutator(PATIENT).apply(PATIENT.new_draft(), "firstName", "  Asha  ")
    assert patient["firstName"] == "Asha"


def test_nurse_experience_years_two_digits():
    draft = FieldMutator(NURSE).apply(NURSE.new_draft(), "experienceYears", "1a23")
    assert draft["experienceYears"] == "12"


def test_checkbox_sets_boolean():
    mutator = FieldMutator(PATIENT)
    draft = mutator.apply(PATIENT.new_draft(), "termsAccepted", "on", input_type="checkbox", checked=True)
    assert draft["termsAccepted"] is True

    draft = mutator.apply(draft, "termsAccepted", "on", input_type="checkbox", checked=False)
    assert draft["termsAccepted"] is False


def test_membership_fields_have_set_semantics():
    mutator = FieldMutator(DOCTOR)
    draft = DOCTOR.new_draft()
    draft = mutator.apply(draft, "consultationModes", "video", input_type="checkbox", checked=True)
    draft = mutator.apply(draft, "consultationModes", "in_person", input_type="checkbox", checked=True)
    draft = mutator.apply(draft, "consultationModes", "video", input_type="checkbox", checked=True)
    assert draft["consultationModes"] == ["video", "in_person"]

    draft = mutator.apply(draft, "consultationModes", "video", input_type="checkbox", checked=False)
    assert draft["consultationModes"] == ["in_person"]

    same = mutator.apply(draft, "consultationModes", "audio", input_type="checkbox", checked=False)
    assert same is draft


def test_operating_days_toggle():
    mutator = FieldMutator(LABORATORY)
    draft = mutator.apply(LABORATORY.new_draft(), "operatingHours.days", "Monday", input_type="checkbox", checked=True)
    draft = mutator.apply(draft, "operatingHours.days", "Tuesday", input_type="checkbox", checked=True)
    draft = mutator.apply(draft, "operatingHours.days", "Monday", input_type="checkbox", checked=False)
    assert get_path(draft, "operatingHours.days") == ["Tuesday"]


def test_language_tags_only_on_enter():
    mutator = FieldMutator(DOCTOR)
    draft = {**DOCTOR.new_draft(), "languages": ["English"]}

    assert mutator.apply(draft, "languages", "Hin") is draft
    assert mutator.key_press(draft, "languages", "Hindi", "a") is draft

    draft = mutator.key_press(draft, "languages", " Hindi ", "Enter")
    assert draft["languages"] == ["English", "Hindi"]

    again = mutator.key_press(draft, "languages", "Hindi", "Enter")
    assert again["languages"] == ["English", "Hindi"]

    assert mutator.key_press(draft, "languages", "   ", "Enter")["languages"] == ["English", "Hindi"]
    assert mutator.remove_tag(draft, "languages", "English")["languages"] == ["Hindi"]


def test_education_entries_never_drop_below_one():
    mutator = FieldMutator(DOCTOR)
    draft = DOCTOR.new_draft()
    assert mutator.remove_education_entry(draft, 0) is draft

    draft = mutator.add_education_entry(draft)
    assert len(draft["education"]) == 2
    draft = mutator.remove_education_entry(draft, 0)
    assert len(draft["education"]) == 1


def test_set_path_creates_missing_objects():
    assert set_path({}, ["a", "b"], 1) == {"a": {"b": 1}}
    assert get_path({"a": [{"b": 2}]}, "a.0.b") == 2
    assert get_path({"a": 1}, "a.b", "x") == "x"

"""Common Bangladesh educational degrees and certificates.

Served by ``GET /degrees/common`` as templates for creating company degrees.
Each row: (name, name_bangla, level, level_bangla, institution_type,
institution_type_bangla).
"""

_UNI = ("University", "বিশ্ববিদ্যালয়")
_BACHELOR = ("Bachelor", "স্নাতক")
_MASTER = ("Master", "স্নাতকোত্তর")
_CERT = ("Certificate", "সার্টিফিকেট")

COMMON_DEGREES: tuple[tuple[str, str, str, str, str, str], ...] = (
    # Secondary / higher secondary
    ("Secondary School Certificate", "মাধ্যমিক স্কুল সার্টিফিকেট", "SSC", "এসএসসি", "Board", "বোর্ড"),
    ("Higher Secondary Certificate", "উচ্চ মাধ্যমিক সার্টিফিকেট", "HSC", "এইচএসসি", "Board", "বোর্ড"),
    # Bachelor
    ("Bachelor of Arts", "কলা বিভাগে স্নাতক", *_BACHELOR, *_UNI),
    ("Bachelor of Science", "বিজ্ঞান বিভাগে স্নাতক", *_BACHELOR, *_UNI),
    ("Bachelor of Commerce", "বাণিজ্য বিভাগে স্নাতক", *_BACHELOR, *_UNI),
    ("Bachelor of Business Administration", "ব্যবসায় প্রশাসনে স্নাতক", *_BACHELOR, *_UNI),
    ("Bachelor of Engineering", "প্রকৌশলে স্নাতক", *_BACHELOR, *_UNI),
    ("Bachelor of Technology", "প্রযুক্তিতে স্নাতক", *_BACHELOR, *_UNI),
    ("Bachelor of Medicine", "চিকিৎসায় স্নাতক", *_BACHELOR, *_UNI),
    ("Bachelor of Laws", "আইনে স্নাতক", *_BACHELOR, *_UNI),
    ("Bachelor of Education", "শিক্ষায় স্নাতক", *_BACHELOR, *_UNI),
    ("Bachelor of Social Work", "সমাজকর্মে স্নাতক", *_BACHELOR, *_UNI),
    # Master
    ("Master of Arts", "কলা বিভাগে স্নাতকোত্তর", *_MASTER, *_UNI),
    ("Master of Science", "বিজ্ঞান বিভাগে স্নাতকোত্তর", *_MASTER, *_UNI),
    ("Master of Commerce", "বাণিজ্য বিভাগে স্নাতকোত্তর", *_MASTER, *_UNI),
    ("Master of Business Administration", "ব্যবসায় প্রশাসনে স্নাতকোত্তর", *_MASTER, *_UNI),
    ("Master of Engineering", "প্রকৌশলে স্নাতকোত্তর", *_MASTER, *_UNI),
    ("Master of Technology", "প্রযুক্তিতে স্নাতকোত্তর", *_MASTER, *_UNI),
    ("Master of Laws", "আইনে স্নাতকোত্তর", *_MASTER, *_UNI),
    ("Master of Education", "শিক্ষায় স্নাতকোত্তর", *_MASTER, *_UNI),
    ("Master of Social Work", "সমাজকর্মে স্নাতকোত্তর", *_MASTER, *_UNI),
    # Doctorate
    ("Doctor of Philosophy", "দর্শনে ডক্টরেট", "PhD", "পিএইচডি", *_UNI),
    ("Doctor of Medicine", "চিকিৎসায় ডক্টরেট", "MD", "এমডি", *_UNI),
    ("Doctor of Engineering", "প্রকৌশলে ডক্টরেট", "PhD", "পিএইচডি", *_UNI),
    # Diplomas and certificates
    ("Diploma in Engineering", "প্রকৌশলে ডিপ্লোমা", "Diploma", "ডিপ্লোমা", "Polytechnic", "পলিটেকনিক"),
    ("Diploma in Commerce", "বাণিজ্যে ডিপ্লোমা", "Diploma", "ডিপ্লোমা", "College", "কলেজ"),
    ("Certificate Course", "সার্টিফিকেট কোর্স", *_CERT, "Institute", "ইনস্টিটিউট"),
    ("Professional Certificate", "পেশাগত সার্টিফিকেট", *_CERT, "Institute", "ইনস্টিটিউট"),
    ("Technical Certificate", "প্রযুক্তিগত সার্টিফিকেট", *_CERT, "Technical Institute", "প্রযুক্তি ইনস্টিটিউট"),
    ("Vocational Certificate", "বৃত্তিমূলক সার্টিফিকেট", *_CERT, "Vocational Institute", "বৃত্তিমূলক ইনস্টিটিউট"),
    ("English Language Certificate", "ইংরেজি ভাষা সার্টিফিকেট", *_CERT, "Language Institute", "ভাষা ইনস্টিটিউট"),
    ("Arabic Language Certificate", "আরবি ভাষা সার্টিফিকেট", *_CERT, "Language Institute", "ভাষা ইনস্টিটিউট"),
    # Madrasah
    ("Dakhil", "দাখিল", "Dakhil", "দাখিল", "Madrasah", "মাদ্রাসা"),
    ("Alim", "আলিম", "Alim", "আলিম", "Madrasah", "মাদ্রাসা"),
    ("Fazil", "ফাজিল", "Fazil", "ফাজিল", "Madrasah", "মাদ্রাসা"),
    ("Kamil", "কামিল", "Kamil", "কামিল", "Madrasah", "মাদ্রাসা"),
)

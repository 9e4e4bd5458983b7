"""Classify sentences into legislative tracks and the release dates they produce."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import Settings
from .sentences import (
    AFineSentence,
    ConsecutiveSentence,
    DetentionAndTrainingOrder,
    ExtendedDeterminateSentence,
    Sentence,
    SingleTermSentence,
    SopcSentence,
    StandardDeterminateSentence,
    all_standard_sentences,
    duration_is_at_least,
    duration_is_less_than,
    duration_is_less_than_or_equal_to,
    half_sentence_date,
    has_discretionary_release,
    has_eds_or_sopc,
    has_non_ora_sentences,
    has_ora_sentences,
    has_sds_plus,
    is_before_and_after_cja_laspo,
    is_dto,
    is_only_after_cja_laspo,
    is_only_before_cja_laspo,
    is_ora_sentence,
    is_recall,
    length_in_days,
    releases_at_two_thirds,
)
from .types import Offender

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Identification:
    track: str | None
    release_date_types: list[str]


def identify(sentence: Sentence, offender: Offender, settings: Settings) -> Identification:
    if isinstance(sentence, ConsecutiveSentence):
        result = _identify_consecutive(sentence, offender, settings)
    elif isinstance(sentence, SopcSentence):
        result = _identify_sopc(sentence, settings)
    elif isinstance(sentence, ExtendedDeterminateSentence):
        result = _identify_extended_determinate(sentence)
    elif isinstance(sentence, AFineSentence):
        result = _identify_afine(sentence, settings)
    elif isinstance(sentence, DetentionAndTrainingOrder) or (
        isinstance(sentence, SingleTermSentence) and is_dto(sentence)
    ):
        result = _identify_dto(sentence, offender, settings)
    elif isinstance(sentence, (StandardDeterminateSentence, SingleTermSentence)):
        result = _identify_standard_determinate(sentence, offender, settings)
    else:
        raise TypeError(f"unknown sentence variant {type(sentence).__name__}")

    if is_recall(sentence):
        result.release_date_types = [t for t in result.release_date_types if t != "HDCED"]
        result.release_date_types.append("PRRD")

    logger.debug("Identified %s as %s %s", sentence.describe(), result.track, result.release_date_types)
    return result


def apply_identification(sentence: Sentence, identification: Identification) -> None:
    sentence.identification_track = identification.track
    sentence.release_date_types = set(identification.release_date_types)


def identify_in_place(sentence: Sentence, offender: Offender, settings: Settings) -> Sentence:
    apply_identification(sentence, identify(sentence, offender, settings))
    return sentence


def _identify_standard_determinate(sentence: Sentence, offender: Offender, settings: Settings) -> Identification:
    dates = settings.important_dates
    if sentence.sentenced_at < dates.laspo_date and sentence.offence.committed_at < dates.cja_date:
        result = _before_cja_and_laspo(sentence)
    else:
        result = _after_cja_and_laspo(sentence, settings)

    if _tused_applies(sentence, result.track, offender, settings):
        result.release_date_types.append("TUSED")
    if _hdced_applies(sentence, offender):
        result.release_date_types.append("HDCED")
    return result


def _before_cja_and_laspo(sentence: Sentence) -> Identification:
    if duration_is_at_least(sentence, 4, "years"):
        if sentence.offence.is_schedule_15:
            return Identification("SDS_BEFORE_CJA_LASPO", ["PED", "NPD", "LED", "SED"])
        return Identification("SDS_BEFORE_CJA_LASPO", ["CRD", "SLED"])
    if duration_is_at_least(sentence, 12, "months"):
        return Identification("SDS_BEFORE_CJA_LASPO", ["LED", "CRD", "SED"])
    return Identification("SDS_BEFORE_CJA_LASPO", ["ARD", "SED"])


def _after_cja_and_laspo(sentence: Sentence, settings: Settings) -> Identification:
    track = "SDS_AFTER_CJA_LASPO"
    if isinstance(sentence, StandardDeterminateSentence) and sentence.is_sds_plus:
        track = "SDS_TWO_THIRDS_RELEASE"

    ora_date = settings.important_dates.ora_date
    if duration_is_less_than(sentence, 12, "months") and sentence.offence.committed_at < ora_date:
        return Identification(track, ["SED", "ARD"])
    return Identification(track, ["SLED", "CRD"])


def _identify_extended_determinate(sentence: ExtendedDeterminateSentence) -> Identification:
    if sentence.automatic_release:
        return Identification("EDS_AUTOMATIC_RELEASE", ["SLED", "CRD"])
    return Identification("EDS_DISCRETIONARY_RELEASE", ["SLED", "CRD", "PED"])


def _identify_sopc(sentence: SopcSentence, settings: Settings) -> Identification:
    if sentence.sdopcu18 or sentence.sentenced_at >= settings.important_dates.pcsc_commencement_date:
        return Identification("SOPC_PED_AT_TWO_THIRDS", ["SLED", "CRD", "PED"])
    return Identification("SOPC_PED_AT_HALFWAY", ["SLED", "CRD", "PED"])


def _identify_afine(sentence: AFineSentence, settings: Settings) -> Identification:
    config = settings.afine
    if (
        sentence.fine_amount is not None
        and sentence.fine_amount >= config.full_term_fine_amount
        and sentence.sentenced_at >= config.full_term_commencement_date
    ):
        return Identification("AFINE_ARD_AT_FULL_TERM", ["SED", "ARD"])
    return Identification("AFINE_ARD_AT_HALFWAY", ["SED", "ARD"])


def _identify_dto(sentence: Sentence, offender: Offender, settings: Settings) -> Identification:
    pcsc = settings.important_dates.pcsc_commencement_date
    if isinstance(sentence, SingleTermSentence):
        before = all(p.identification_track == "DTO_BEFORE_PCSC" for p in sentence.standard_sentences)
    else:
        before = sentence.sentenced_at < pcsc
    track = "DTO_BEFORE_PCSC" if before else "DTO_AFTER_PCSC"
    types = ["SED", "MTD", "ETD", "LTD"]
    if track == "DTO_AFTER_PCSC" and offender.age_on(half_sentence_date(sentence)) > 18:
        types.append("TUSED")
    return Identification(track, types)


def _identify_consecutive(sentence: ConsecutiveSentence, offender: Offender, settings: Settings) -> Identification:
    first_track = sentence.ordered_sentences[0].identification_track
    if has_eds_or_sopc(sentence):
        if has_discretionary_release(sentence):
            return Identification(first_track, ["SLED", "CRD", "PED"])
        return Identification(first_track, ["SLED", "CRD"])

    if is_dto(sentence):
        return _identify_dto(sentence, offender, settings)

    dates = settings.important_dates
    if releases_at_two_thirds(sentence):
        result = Identification("SDS_TWO_THIRDS_RELEASE", ["SLED", "CRD"])
    elif is_before_and_after_cja_laspo(sentence):
        if any(p.offence.is_schedule_15 for p in sentence.ordered_sentences):
            result = Identification(first_track, ["NCRD", "PED", "NPD", "SLED"])
        else:
            result = Identification(first_track, ["SLED", "CRD"])
    elif is_only_after_cja_laspo(sentence):
        if has_ora_sentences(sentence, dates) and has_non_ora_sentences(sentence, dates):
            if duration_is_less_than(sentence, 12, "months"):
                result = Identification("SDS_AFTER_CJA_LASPO", ["LED", "SED", "CRD"])
            else:
                result = Identification("SDS_AFTER_CJA_LASPO", ["SLED", "CRD"])
        else:
            result = _after_cja_and_laspo(sentence, settings)
            result.track = first_track
    elif is_only_before_cja_laspo(sentence):
        result = _before_cja_and_laspo(sentence)
    else:
        result = Identification(first_track, ["SLED", "CRD"])

    if _tused_applies(sentence, result.track, offender, settings):
        result.release_date_types.append("TUSED")
    if _hdced_applies(sentence, offender):
        result.release_date_types.append("HDCED")
    return result


def _tused_applies(sentence: Sentence, track: str | None, offender: Offender, settings: Settings) -> bool:
    dates = settings.important_dates
    if isinstance(sentence, ConsecutiveSentence):
        ora = has_ora_sentences(sentence, dates)
        after_laspo = is_only_after_cja_laspo(sentence) and all_standard_sentences(sentence)
        after_laspo = after_laspo and not has_sds_plus(sentence)
    else:
        ora = is_ora_sentence(sentence, dates)
        after_laspo = track == "SDS_AFTER_CJA_LASPO"
    return (
        ora
        and after_laspo
        and duration_is_less_than_or_equal_to(sentence, 2, "years")
        and length_in_days(sentence) > 1
        and offender.age_on(half_sentence_date(sentence)) > 18
    )


def _hdced_applies(sentence: Sentence, offender: Offender) -> bool:
    return (
        duration_is_at_least(sentence, 12, "weeks")
        and duration_is_less_than(sentence, 4, "years")
        and not offender.is_active_sex_offender
    )

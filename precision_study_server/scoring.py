SUS_ITEM_COUNT = 10


def sus_score(responses: list[int]) -> int:
    """System Usability Scale score in [0, 100] for responses on a 1-5 scale.

    Odd-numbered items (1, 3, 5, ...) are positively worded and contribute value - 1,
    even-numbered items contribute 5 - value. The sum is scaled by 2.5.
    Anything other than exactly 10 responses scores 0.
    """
    if len(responses) != SUS_ITEM_COUNT:
        return 0

    total = 0
    for i, response in enumerate(responses):
        if i % 2 == 0:
            total += response - 1
        else:
            total += 5 - response
    return int(total * 2.5)

"""
Knowledge quest catalogue
Health, wealth and insurance quests unlocked by player level
"""

import random

QUEST_TYPES = ('health', 'wealth', 'insurance')
DIFFICULTIES = ('easy', 'medium', 'hard')


def _q(question_id, text, options, correct_answer, explanation, points):
    return {
        'id': question_id,
        'text': text,
        'options': options,
        'correct_answer': correct_answer,
        'explanation': explanation,
        'points': points,
    }


HEALTH_QUESTS = [
    {
        'id': 'health_cardio_basics',
        'title': 'Cardio Fundamentals',
        'description': 'Master the basics of cardiovascular exercise and understand how it benefits your heart, lungs, and overall wellness.',
        'type': 'health',
        'difficulty': 'easy',
        'prerequisite_level': 1,
        'time_limit': 180,
        'total_points': 150,
        'questions': [
            _q('q1', 'How many minutes of moderate cardio exercise does the WHO recommend per week for adults?',
               ['75 minutes', '150 minutes', '300 minutes', '60 minutes'], 1,
               'The World Health Organization recommends at least 150 minutes of moderate-intensity aerobic activity throughout the week for adults.', 25),
            _q('q2', 'Which of these is NOT a benefit of regular cardiovascular exercise?',
               ['Improved heart health', 'Better mood and mental health', 'Decreased bone density', 'Enhanced immune system'], 2,
               'Regular cardio exercise actually INCREASES bone density. Weight-bearing cardio exercises help strengthen bones.', 30),
            _q('q3', 'What is the target heart rate zone for moderate-intensity exercise?',
               ['40-50% of maximum heart rate', '50-70% of maximum heart rate', '70-85% of maximum heart rate', '85-95% of maximum heart rate'], 1,
               'Moderate-intensity exercise should be performed at 50-70% of your maximum heart rate for optimal cardiovascular benefits.', 35),
            _q('q4', 'Which cardio exercise burns the most calories per hour for an average person?',
               ['Walking at 3.5 mph', 'Cycling at moderate pace', 'Swimming laps', 'Running at 8 mph'], 3,
               'Running at 8 mph typically burns the most calories per hour, around 800-1000 calories depending on body weight.', 40),
            _q('q5', 'How long should you warm up before intense cardio exercise?',
               ['2-3 minutes', '5-10 minutes', '15-20 minutes', 'No warm-up needed'], 1,
               'A proper warm-up should last 5-10 minutes to gradually prepare your body for intense exercise and reduce injury risk.', 20),
        ],
    },
    {
        'id': 'health_nutrition_basics',
        'title': 'Nutrition Essentials',
        'description': 'Learn the fundamentals of healthy eating, macronutrients, and how nutrition impacts your wellness journey.',
        'type': 'health',
        'difficulty': 'medium',
        'prerequisite_level': 3,
        'time_limit': 240,
        'total_points': 200,
        'questions': [
            _q('q1', 'What percentage of your daily calories should come from carbohydrates according to dietary guidelines?',
               ['20-30%', '45-65%', '70-80%', '10-20%'], 1,
               'The recommended daily calorie intake from carbohydrates is 45-65% for optimal energy and brain function.', 40),
            _q('q2', 'Which vitamin is primarily obtained from sunlight exposure?',
               ['Vitamin A', 'Vitamin C', 'Vitamin D', 'Vitamin B12'], 2,
               'Vitamin D is synthesized in the skin when exposed to UVB radiation from sunlight, earning it the nickname "sunshine vitamin".', 35),
            _q('q3', 'How much water should an average adult consume per day?',
               ['4-6 glasses', '8-10 glasses', '12-14 glasses', '2-3 glasses'], 1,
               'The general recommendation is 8-10 glasses (about 2-2.5 liters) of water per day, though needs vary by individual and activity level.', 30),
            _q('q4', 'Which macronutrient provides the most calories per gram?',
               ['Carbohydrates (4 cal/g)', 'Protein (4 cal/g)', 'Fat (9 cal/g)', 'Alcohol (7 cal/g)'], 2,
               'Fats provide 9 calories per gram, more than double the calories provided by carbohydrates and proteins (4 cal/g each).', 45),
            _q('q5', 'What is the recommended daily fiber intake for adults?',
               ['10-15 grams', '25-35 grams', '45-50 grams', '5-10 grams'], 1,
               'Adults should consume 25-35 grams of fiber daily for optimal digestive health and disease prevention.', 50),
        ],
    },
]

WEALTH_QUESTS = [
    {
        'id': 'wealth_investment_basics',
        'title': 'Investment 101',
        'description': 'Learn the fundamentals of investing, from stocks and bonds to mutual funds and risk management.',
        'type': 'wealth',
        'difficulty': 'easy',
        'prerequisite_level': 1,
        'time_limit': 300,
        'total_points': 175,
        'questions': [
            _q('q1', 'What does "diversification" mean in investment terms?',
               ['Putting all money in one stock', 'Spreading investments across different assets',
                'Only investing in government bonds', 'Buying and selling stocks quickly'], 1,
               'Diversification means spreading your investments across different types of assets to reduce risk and potential losses.', 30),
            _q('q2', 'What is compound interest?',
               ['Interest paid only on the principal amount', 'Interest paid on both principal and previously earned interest',
                'A type of bank fee', 'Interest that decreases over time'], 1,
               'Compound interest is when you earn interest not only on your initial investment but also on the interest that has already been earned.', 35),
            _q('q3', 'Which investment typically offers higher returns but also higher risk?',
               ['Government bonds', 'Bank savings accounts', 'Stocks/Equities', 'Fixed deposits'], 2,
               'Stocks generally offer higher potential returns than bonds or savings accounts, but they also come with higher risk and volatility.', 40),
            _q('q4', 'What is the general rule for emergency fund savings?',
               ['1-2 months of expenses', '3-6 months of expenses', '12 months of expenses', 'Emergency funds are unnecessary'], 1,
               'Financial experts recommend keeping 3-6 months worth of living expenses in an easily accessible emergency fund.', 35),
            _q('q5', 'What does P/E ratio stand for in stock analysis?',
               ['Profit/Expense ratio', 'Price/Earnings ratio', 'Performance/Efficiency ratio', 'Principal/Equity ratio'], 1,
               "P/E (Price-to-Earnings) ratio compares a company's stock price to its earnings per share, helping evaluate if a stock is overvalued or undervalued.", 35),
        ],
    },
    {
        'id': 'wealth_ulip_myths',
        'title': 'ULIP Myths Busted',
        'description': 'Separate fact from fiction about Unit Linked Insurance Plans and make informed financial decisions.',
        'type': 'wealth',
        'difficulty': 'medium',
        'prerequisite_level': 5,
        'time_limit': 360,
        'total_points': 250,
        'questions': [
            _q('q1', 'What is the lock-in period for ULIP investments in India?',
               ['3 years', '5 years', '7 years', '10 years'], 1,
               'ULIPs have a mandatory lock-in period of 5 years, during which you cannot withdraw your investment without penalties.', 45),
            _q('q2', 'Which is a common myth about ULIPs?',
               ['ULIPs provide both insurance and investment', 'ULIPs have high charges compared to mutual funds',
                'ULIPs guarantee high returns', 'ULIPs offer tax benefits'], 2,
               'MYTH: ULIPs do NOT guarantee high returns. Returns depend on market performance and fund management, just like other market-linked investments.', 50),
            _q('q3', 'After the lock-in period, how many free withdrawals are typically allowed per year?',
               ['Unlimited withdrawals', '4 free withdrawals', 'No withdrawals allowed', '12 free withdrawals'], 1,
               'Most ULIPs allow 4 free partial withdrawals per year after the lock-in period. Additional withdrawals may incur charges.', 40),
            _q('q4', 'What happens to the insurance coverage if you stop paying ULIP premiums after 3 years?',
               ['Insurance continues for life', 'Insurance coverage stops immediately',
                'Coverage continues until the lock-in period ends', 'Coverage reduces to zero gradually'], 1,
               'If you stop paying premiums after 3 years but within the lock-in period, your policy becomes a discontinued policy but insurance coverage typically continues until the lock-in period ends.', 55),
            _q('q5', 'Which charge is typically the highest in the initial years of a ULIP?',
               ['Fund management charge', 'Premium allocation charge', 'Mortality charge', 'Administrative charge'], 1,
               'Premium allocation charges are typically highest in the initial years, often taking a significant portion of your premium in the first few years.', 60),
        ],
    },
]

INSURANCE_QUESTS = [
    {
        'id': 'insurance_policy_basics',
        'title': 'Insurance Policy Fundamentals',
        'description': 'Master the basics of insurance policies, coverage types, and how to choose the right protection for your needs.',
        'type': 'insurance',
        'difficulty': 'easy',
        'prerequisite_level': 2,
        'time_limit': 270,
        'total_points': 160,
        'questions': [
            _q('q1', 'What is a deductible in insurance terms?',
               ['The maximum amount insurance will pay', 'The amount you pay before insurance covers costs',
                'The monthly insurance premium', 'A type of insurance policy'], 1,
               'A deductible is the amount you must pay out-of-pocket before your insurance coverage kicks in to pay for covered expenses.', 30),
            _q('q2', 'What does "sum assured" mean in life insurance?',
               ['The premium you pay annually', 'The amount paid to beneficiaries upon death',
                'The cash value of the policy', 'The number of years the policy is valid'], 1,
               'Sum assured is the guaranteed amount that will be paid to your beneficiaries in case of your death during the policy term.', 35),
            _q('q3', 'Which factor does NOT typically affect life insurance premiums?',
               ['Age', 'Health condition', 'Smoking habits', 'Favorite color'], 3,
               'Life insurance premiums are based on risk factors like age, health, lifestyle habits, and occupation, not personal preferences like favorite color.', 25),
            _q('q4', 'What is the grace period in insurance?',
               ['Time to file a claim', 'Period to pay overdue premiums without policy lapse',
                'Waiting period before coverage begins', 'Time to change beneficiaries'], 1,
               'Grace period is the time (usually 30 days) after a premium due date during which you can pay the premium without the policy lapsing.', 40),
            _q('q5', 'What is the difference between term insurance and whole life insurance?',
               ['Term is permanent, whole life is temporary', 'Term covers specific period, whole life covers entire lifetime',
                'No difference, they are the same', 'Term is more expensive than whole life'], 1,
               'Term insurance provides coverage for a specific period (term), while whole life insurance provides coverage for your entire lifetime.', 30),
        ],
    },
    {
        'id': 'insurance_health_coverage',
        'title': 'Health Insurance Mastery',
        'description': 'Understand health insurance coverage, claim processes, and how to maximize your healthcare benefits.',
        'type': 'insurance',
        'difficulty': 'medium',
        'prerequisite_level': 4,
        'time_limit': 300,
        'total_points': 220,
        'questions': [
            _q('q1', 'What is a pre-existing condition in health insurance?',
               ['A condition that develops after buying insurance', 'A medical condition you have before getting insurance',
                'A condition covered immediately', 'A condition that never gets covered'], 1,
               'A pre-existing condition is any health problem you have before purchasing your health insurance policy.', 40),
            _q('q2', 'What is the typical waiting period for pre-existing conditions in health insurance?',
               ['6 months', '1 year', '2-4 years', 'No waiting period'], 2,
               'Most health insurance policies have a waiting period of 2-4 years for pre-existing conditions before they are covered.', 45),
            _q('q3', 'What does "cashless treatment" mean?',
               ['Treatment is completely free', 'You pay later with interest',
                'Insurance company pays hospital directly', 'You get cash back after treatment'], 2,
               "Cashless treatment means the insurance company settles the bill directly with the hospital, so you don't need to pay upfront.", 40),
            _q('q4', 'What is co-payment in health insurance?',
               ['Payment made by a co-worker', 'Percentage of claim amount you must pay',
                'Payment made to multiple doctors', 'Full payment of the premium'], 1,
               'Co-payment is a percentage of the claim amount that you must bear from your own pocket, while insurance covers the rest.', 50),
            _q('q5', 'Which is typically NOT covered under standard health insurance?',
               ['Hospitalization expenses', 'Cosmetic surgery for beauty',
                'Emergency ambulance costs', 'Pre and post hospitalization expenses'], 1,
               'Cosmetic or plastic surgery done purely for aesthetic reasons is typically excluded from standard health insurance coverage.', 45),
        ],
    },
]

ALL_QUESTS = HEALTH_QUESTS + WEALTH_QUESTS + INSURANCE_QUESTS


def get_all_quests():
    return list(ALL_QUESTS)


def get_quest_by_id(quest_id):
    for quest in ALL_QUESTS:
        if quest['id'] == quest_id:
            return quest
    return None


def get_quests_by_type(quest_type):
    return [q for q in ALL_QUESTS if q['type'] == quest_type]


def get_quests_by_difficulty(difficulty):
    return [q for q in ALL_QUESTS if q['difficulty'] == difficulty]


def get_available_quests(user_level):
    return [q for q in ALL_QUESTS if q['prerequisite_level'] <= user_level]


def get_random_quest(quest_type=None, user_level=1, rng=random):
    """
    Pick a random quest unlocked at user_level, optionally of one type
    """
    available = get_available_quests(user_level)
    if quest_type:
        available = [q for q in available if q['type'] == quest_type]
    if not available:
        return None
    return rng.choice(available)

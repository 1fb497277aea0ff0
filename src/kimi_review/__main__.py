from kimi_review.main import main

main()
